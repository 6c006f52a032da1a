from enum import Enum


class ActionState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    WATCHING = "watching"
    SETTLED_CONFIRMED = "settled_confirmed"
    SETTLED_FAILED = "settled_failed"


_ALLOWED_TRANSITIONS: dict[ActionState, set[ActionState]] = {
    ActionState.IDLE: {ActionState.VALIDATING},
    # validation failures go straight back to idle without a handle
    ActionState.VALIDATING: {ActionState.SUBMITTING, ActionState.IDLE},
    ActionState.SUBMITTING: {ActionState.WATCHING, ActionState.SETTLED_FAILED},
    ActionState.WATCHING: {ActionState.SETTLED_CONFIRMED, ActionState.SETTLED_FAILED},
    ActionState.SETTLED_CONFIRMED: {ActionState.IDLE},
    ActionState.SETTLED_FAILED: {ActionState.IDLE},
}


def can_transition(current: ActionState, target: ActionState) -> bool:
    return target in _ALLOWED_TRANSITIONS.get(current, set())


def is_in_flight(state: ActionState) -> bool:
    return state is not ActionState.IDLE
