from enum import Enum


class TxState(str, Enum):
    PENDING = "pending"
    CONFIRMING = "confirming"
    CONFIRMED = "confirmed"
    FAILED = "failed"


_ALLOWED_TRANSITIONS: dict[TxState, set[TxState]] = {
    TxState.PENDING: {TxState.CONFIRMING, TxState.FAILED},
    TxState.CONFIRMING: {TxState.CONFIRMED, TxState.FAILED},
    TxState.CONFIRMED: set(),
    TxState.FAILED: set(),
}

TERMINAL_STATES = frozenset({TxState.CONFIRMED, TxState.FAILED})


def can_transition(current: TxState, target: TxState) -> bool:
    return target in _ALLOWED_TRANSITIONS.get(current, set())


def is_terminal(state: TxState) -> bool:
    return state in TERMINAL_STATES
