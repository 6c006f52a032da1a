from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Union

from notes_sync.sync.errors import ValidationError
from notes_sync.units import parse_ether


class MutationKind(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    TOGGLE_VISIBILITY = "toggle_visibility"
    TOGGLE_PIN = "toggle_pin"
    TIP = "tip"


def _require_text(field: str, value: Any) -> None:
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", field=field)
    if not value.strip():
        raise ValidationError(f"{field} is required", field=field)


def _require_note_id(note_id: Any) -> None:
    if isinstance(note_id, bool) or not isinstance(note_id, int) or note_id < 0:
        raise ValidationError("note_id must be a non-negative integer", field="note_id")


@dataclass(frozen=True)
class CreateNote:
    title: str
    content: str
    is_public: bool = False

    kind: ClassVar[MutationKind] = MutationKind.CREATE
    function: ClassVar[str] = "createNote"

    @property
    def note_id(self) -> None:
        return None

    @property
    def value(self) -> int:
        return 0

    def call_args(self) -> tuple[Any, ...]:
        return (self.title, self.content, self.is_public)

    def validate(self) -> None:
        _require_text("title", self.title)
        _require_text("content", self.content)
        if not isinstance(self.is_public, bool):
            raise ValidationError("is_public must be a boolean", field="is_public")


@dataclass(frozen=True)
class _NoteMutation:
    note_id: int

    @property
    def value(self) -> int:
        return 0

    def call_args(self) -> tuple[Any, ...]:
        return (self.note_id,)

    def validate(self) -> None:
        _require_note_id(self.note_id)


@dataclass(frozen=True)
class UpdateNote(_NoteMutation):
    title: str
    content: str

    kind: ClassVar[MutationKind] = MutationKind.UPDATE
    function: ClassVar[str] = "updateNote"

    def call_args(self) -> tuple[Any, ...]:
        return (self.note_id, self.title, self.content)

    def validate(self) -> None:
        super().validate()
        _require_text("title", self.title)
        _require_text("content", self.content)


@dataclass(frozen=True)
class DeleteNote(_NoteMutation):
    kind: ClassVar[MutationKind] = MutationKind.DELETE
    function: ClassVar[str] = "deleteNote"


@dataclass(frozen=True)
class ToggleVisibility(_NoteMutation):
    kind: ClassVar[MutationKind] = MutationKind.TOGGLE_VISIBILITY
    function: ClassVar[str] = "toggleNoteVisibility"


@dataclass(frozen=True)
class TogglePin(_NoteMutation):
    kind: ClassVar[MutationKind] = MutationKind.TOGGLE_PIN
    function: ClassVar[str] = "togglePinNote"


@dataclass(frozen=True)
class TipNote(_NoteMutation):
    amount: int

    kind: ClassVar[MutationKind] = MutationKind.TIP
    function: ClassVar[str] = "tipNote"

    @property
    def value(self) -> int:
        return self.amount

    def validate(self) -> None:
        super().validate()
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise ValidationError("tip amount must be an integer number of wei", field="amount")
        if self.amount <= 0:
            raise ValidationError("Tip amount must be greater than 0", field="amount")


Mutation = Union[CreateNote, UpdateNote, DeleteNote, ToggleVisibility, TogglePin, TipNote]


def parse_tip_amount(text: str | None) -> int:
    """Turn user-entered ether (e.g. ``"0.01"``) into a positive wei amount."""
    if text is None or not text.strip():
        raise ValidationError("tip amount is required", field="amount")
    try:
        wei = parse_ether(text)
    except ValueError as exc:
        raise ValidationError(str(exc), field="amount") from exc
    if wei <= 0:
        raise ValidationError("Tip amount must be greater than 0", field="amount")
    return wei


def action_key_for(mutation: Mutation) -> str:
    """Logical UI action a mutation belongs to, used for duplicate suppression."""
    if isinstance(mutation, (CreateNote, UpdateNote)):
        return "form:submit"
    return f"note:{mutation.note_id}:{mutation.kind.value}"


OWNER_ACTIONS = frozenset(
    {MutationKind.UPDATE, MutationKind.TOGGLE_PIN, MutationKind.TOGGLE_VISIBILITY, MutationKind.DELETE}
)
VISITOR_ACTIONS = frozenset({MutationKind.TIP})


def available_actions(author: str, address: str | None) -> frozenset[MutationKind]:
    """Actions worth offering on a note. Advisory only; the ledger has the final say."""
    if not address:
        return frozenset()
    if author.lower() == address.lower():
        return OWNER_ACTIONS
    return VISITOR_ACTIONS
