from enum import Enum


class FormMode(str, Enum):
    IDLE = "idle"
    CREATING = "creating"
    EDITING = "editing"
    SUBMITTING = "submitting"
    ERROR = "error"


_ALLOWED_TRANSITIONS: dict[FormMode, set[FormMode]] = {
    FormMode.IDLE: {FormMode.CREATING, FormMode.EDITING},
    FormMode.CREATING: {FormMode.IDLE, FormMode.EDITING, FormMode.SUBMITTING},
    FormMode.EDITING: {FormMode.IDLE, FormMode.CREATING, FormMode.EDITING, FormMode.SUBMITTING},
    FormMode.SUBMITTING: {FormMode.IDLE, FormMode.ERROR},
    FormMode.ERROR: {FormMode.IDLE, FormMode.CREATING, FormMode.EDITING, FormMode.SUBMITTING},
}

EDITABLE_MODES = frozenset({FormMode.IDLE, FormMode.CREATING, FormMode.EDITING, FormMode.ERROR})


def can_transition(current: FormMode, target: FormMode) -> bool:
    return target in _ALLOWED_TRANSITIONS.get(current, set())


def allows_field_edits(mode: FormMode) -> bool:
    return mode in EDITABLE_MODES
