from dataclasses import dataclass, replace

from notes_sync.contracts.form_lifecycle import FormMode, allows_field_edits, can_transition
from notes_sync.ledger.models import Note
from notes_sync.sync.errors import InvalidTransition, ValidationError
from notes_sync.sync.mutations import CreateNote, UpdateNote


@dataclass(frozen=True)
class FormDraft:
    title: str = ""
    content: str = ""
    is_public: bool = False
    note_id: int | None = None

    @property
    def is_edit(self) -> bool:
        return self.note_id is not None

    @property
    def is_complete(self) -> bool:
        return bool(self.title.strip()) and bool(self.content.strip())


EMPTY_DRAFT = FormDraft()


class FormStateMachine:
    """Create/edit form for the note being composed.

    The draft is a detached copy: editing it never touches cached notes. It is
    cleared only once the submission confirms, and survives failures so the
    user can correct it and try again.
    """

    def __init__(self) -> None:
        self.mode = FormMode.IDLE
        self.draft = EMPTY_DRAFT
        self.error: str | None = None
        # the mode an Error state returns to once the user resumes editing
        self._composing_mode = FormMode.IDLE

    @property
    def is_submitting(self) -> bool:
        return self.mode is FormMode.SUBMITTING

    @property
    def can_submit(self) -> bool:
        return self.mode in {FormMode.CREATING, FormMode.EDITING, FormMode.ERROR} and self.draft.is_complete

    def start_create(self) -> None:
        self._require_editable()
        if self.mode is FormMode.CREATING:
            return
        self._move(FormMode.CREATING)
        self.draft = EMPTY_DRAFT
        self.error = None

    def start_edit(self, note: Note) -> None:
        self._require_editable()
        self._move(FormMode.EDITING)
        self.draft = FormDraft(title=note.title, content=note.content, is_public=note.is_public, note_id=note.id)
        self.error = None

    def set_title(self, title: str) -> None:
        self._edit(title=title)

    def set_content(self, content: str) -> None:
        self._edit(content=content)

    def set_public(self, is_public: bool) -> None:
        if self.draft.is_edit:
            raise InvalidTransition("visibility is changed with a toggle, not through the edit form")
        self._edit(is_public=is_public)

    def cancel(self) -> None:
        if self.mode is FormMode.SUBMITTING:
            raise InvalidTransition("cannot cancel while a submission is in flight")
        if self.mode is not FormMode.IDLE:
            self._move(FormMode.IDLE)
        self._reset()

    def build_mutation(self) -> CreateNote | UpdateNote:
        if self.mode is FormMode.SUBMITTING:
            raise InvalidTransition("a submission is already in flight")
        if self.mode is FormMode.IDLE:
            raise ValidationError("title is required", field="title")
        draft = self.draft
        if draft.is_edit:
            mutation = UpdateNote(note_id=draft.note_id, title=draft.title, content=draft.content)
        else:
            mutation = CreateNote(title=draft.title, content=draft.content, is_public=draft.is_public)
        mutation.validate()
        return mutation

    def begin_submit(self) -> None:
        self._move(FormMode.SUBMITTING)
        self.error = None

    def confirm(self) -> None:
        self._move(FormMode.IDLE)
        self._reset()

    def fail(self, message: str) -> None:
        self._move(FormMode.ERROR)
        self.error = message

    def _edit(self, **changes) -> None:
        self._require_editable()
        if self.mode is FormMode.IDLE:
            self._move(FormMode.CREATING)
        elif self.mode is FormMode.ERROR:
            self._move(self._composing_mode)
            self.error = None
        self.draft = replace(self.draft, **changes)

    def _require_editable(self) -> None:
        if not allows_field_edits(self.mode):
            raise InvalidTransition("the form is locked while a submission is in flight")

    def _move(self, target: FormMode) -> None:
        if not can_transition(self.mode, target):
            raise InvalidTransition(f"form cannot move from {self.mode.value} to {target.value}")
        self.mode = target
        if target in {FormMode.CREATING, FormMode.EDITING}:
            self._composing_mode = target

    def _reset(self) -> None:
        self.draft = EMPTY_DRAFT
        self.error = None
        self._composing_mode = FormMode.IDLE
