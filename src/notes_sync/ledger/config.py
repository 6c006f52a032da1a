import os
from dataclasses import dataclass

DEFAULT_CONTRACT_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"


@dataclass(frozen=True)
class LedgerConfig:
    gateway_url: str = "http://127.0.0.1:8545"
    contract_address: str = DEFAULT_CONTRACT_ADDRESS
    poll_interval: float = 1.0
    confirmations: int = 1
    request_timeout: float = 10.0


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number") from exc
    if value <= 0:
        raise ValueError(f"{name} must be > 0")
    return value


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if value < 1:
        raise ValueError(f"{name} must be >= 1")
    return value


def get_ledger_config() -> LedgerConfig:
    return LedgerConfig(
        gateway_url=os.getenv("NOTES_SYNC_GATEWAY_URL", "http://127.0.0.1:8545"),
        contract_address=os.getenv("NOTES_SYNC_CONTRACT_ADDRESS", DEFAULT_CONTRACT_ADDRESS),
        poll_interval=_env_float("NOTES_SYNC_POLL_INTERVAL", 1.0),
        confirmations=_env_int("NOTES_SYNC_CONFIRMATIONS", 1),
        request_timeout=_env_float("NOTES_SYNC_REQUEST_TIMEOUT", 10.0),
    )
