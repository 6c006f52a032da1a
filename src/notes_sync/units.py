from decimal import ROUND_DOWN, Decimal, InvalidOperation

WEI_PER_ETHER = 10**18


def parse_ether(amount: str) -> int:
    """Convert a decimal ether amount such as ``"0.01"`` to wei, rounding down."""
    text = amount.strip()
    if not text:
        raise ValueError("amount is required")
    try:
        value = Decimal(text)
    except InvalidOperation as exc:
        raise ValueError(f"not a decimal amount: {amount!r}") from exc
    if not value.is_finite():
        raise ValueError(f"not a decimal amount: {amount!r}")
    return int((value * WEI_PER_ETHER).to_integral_value(rounding=ROUND_DOWN))


def format_ether(wei: int, places: int = 4) -> str:
    quantum = Decimal(1).scaleb(-places)
    return str((Decimal(wei) / WEI_PER_ETHER).quantize(quantum, rounding=ROUND_DOWN))


def normalize_address(address: str) -> str:
    return address.strip().lower()


def shorten_address(address: str) -> str:
    if len(address) <= 10:
        return address
    return f"{address[:6]}...{address[-4:]}"
