import logging
from dataclasses import dataclass

from notes_sync.contracts.action_lifecycle import ActionState, can_transition, is_in_flight
from notes_sync.contracts.form_lifecycle import FormMode
from notes_sync.contracts.invalidation import affected_views
from notes_sync.contracts.tx_lifecycle import TxState
from notes_sync.keys import ReadView, ViewKey
from notes_sync.ledger.models import Note
from notes_sync.sync.cache import ReadQueryCache
from notes_sync.sync.errors import InvalidTransition, NotesSyncError
from notes_sync.sync.form import FormStateMachine
from notes_sync.sync.identity import IdentityProvider
from notes_sync.sync.mutations import (
    DeleteNote,
    Mutation,
    TipNote,
    TogglePin,
    ToggleVisibility,
    action_key_for,
    parse_tip_amount,
)
from notes_sync.sync.submitter import TxHandle, WriteSubmitter
from notes_sync.sync.watcher import ConfirmationWatcher, TxStatus

logger = logging.getLogger(__name__)

FORM_ACTION = "form:submit"


@dataclass(frozen=True)
class ActionOutcome:
    action_key: str
    state: ActionState
    handle: TxHandle | None = None
    status: TxStatus | None = None
    error: NotesSyncError | None = None
    invalidated: tuple[ViewKey, ...] = ()
    suppressed: bool = False

    @property
    def confirmed(self) -> bool:
        return self.state is ActionState.SETTLED_CONFIRMED

    @property
    def failed(self) -> bool:
        return self.state is ActionState.SETTLED_FAILED


class LifecycleOrchestrator:
    """Runs user mutations end to end.

    validate -> submit -> watch -> (confirmed) invalidate affected views and
    reset the form, or (failed) leave every view alone and keep the draft.
    """

    def __init__(
        self,
        cache: ReadQueryCache,
        submitter: WriteSubmitter,
        watcher: ConfirmationWatcher,
        identity: IdentityProvider,
        form: FormStateMachine | None = None,
    ) -> None:
        self.cache = cache
        self.submitter = submitter
        self.watcher = watcher
        self.identity = identity
        self.form = form or FormStateMachine()
        self._states: dict[str, ActionState] = {}
        self.last_outcomes: dict[str, ActionOutcome] = {}

    def action_state(self, action_key: str) -> ActionState:
        return self._states.get(action_key, ActionState.IDLE)

    @property
    def is_busy(self) -> bool:
        return any(is_in_flight(state) for state in self._states.values())

    async def submit_form(self) -> ActionOutcome:
        if self.action_state(FORM_ACTION) is not ActionState.IDLE or self.form.is_submitting:
            return self._suppressed(FORM_ACTION)
        mutation = self.form.build_mutation()
        return await self._run(mutation, FORM_ACTION, bind_form=True)

    async def delete_note(self, note_id: int) -> ActionOutcome:
        return await self.execute(DeleteNote(note_id=note_id))

    async def toggle_visibility(self, note_id: int) -> ActionOutcome:
        return await self.execute(ToggleVisibility(note_id=note_id))

    async def toggle_pin(self, note_id: int) -> ActionOutcome:
        return await self.execute(TogglePin(note_id=note_id))

    async def tip_note(self, note_id: int, amount: int | str) -> ActionOutcome:
        if isinstance(amount, str):
            amount = parse_tip_amount(amount)
        return await self.execute(TipNote(note_id=note_id, amount=amount))

    async def execute(self, mutation: Mutation, action_key: str | None = None) -> ActionOutcome:
        key = action_key or action_key_for(mutation)
        if self.action_state(key) is not ActionState.IDLE:
            return self._suppressed(key)
        return await self._run(mutation, key, bind_form=False)

    async def _run(self, mutation: Mutation, key: str, bind_form: bool) -> ActionOutcome:
        self._move(key, ActionState.VALIDATING)
        try:
            mutation.validate()
            sender = self.identity.require()
        except NotesSyncError:
            self._move(key, ActionState.IDLE)
            raise

        target = self._cached_note(mutation.note_id)
        if bind_form:
            self.form.begin_submit()

        self._move(key, ActionState.SUBMITTING)
        try:
            handle = await self.submitter.submit(mutation, sender, key)
        except BaseException:
            self._move(key, ActionState.SETTLED_FAILED)
            self._move(key, ActionState.IDLE)
            if bind_form and self.form.is_submitting:
                self.form.fail("submission could not be started")
            raise

        if handle.is_terminal:
            return self._settle(mutation, key, handle, sender, target, bind_form)

        self._move(key, ActionState.WATCHING)

        # settle from the handle itself so that an abandoned wait below still
        # invalidates once the ledger resolves the transaction
        settled: list[ActionOutcome] = []

        def on_change(changed: TxHandle) -> None:
            if changed.is_terminal:
                remove()
                settled.append(self._settle(mutation, key, changed, sender, target, bind_form))

        remove = handle.add_listener(on_change)
        await self.watcher.wait(handle)
        return settled[0]

    def _settle(
        self,
        mutation: Mutation,
        key: str,
        handle: TxHandle,
        sender: str,
        target: Note | None,
        bind_form: bool,
    ) -> ActionOutcome:
        status = TxStatus.from_handle(handle)
        if status.state is TxState.CONFIRMED:
            outcome = self._settle_confirmed(mutation, key, handle, status, sender, target, bind_form)
        else:
            outcome = self._settle_failed(key, handle, status, bind_form)
        self._move(key, ActionState.IDLE)
        self.last_outcomes[key] = outcome
        return outcome

    def _settle_confirmed(
        self,
        mutation: Mutation,
        key: str,
        handle: TxHandle,
        status: TxStatus,
        sender: str,
        target: Note | None,
        bind_form: bool,
    ) -> ActionOutcome:
        self._move(key, ActionState.SETTLED_CONFIRMED)
        target = target or self._cached_note(mutation.note_id)
        keys = self._views_to_invalidate(mutation, sender, target)
        for view_key in keys:
            self.cache.invalidate(view_key)
        logger.info("%s confirmed, invalidated %s", mutation.kind.value, ", ".join(str(k) for k in keys))

        if bind_form:
            self.form.confirm()
        elif isinstance(mutation, DeleteNote) and self._editing(mutation.note_id):
            self.form.cancel()

        return ActionOutcome(
            action_key=key,
            state=ActionState.SETTLED_CONFIRMED,
            handle=handle,
            status=status,
            invalidated=tuple(keys),
        )

    def _settle_failed(self, key: str, handle: TxHandle, status: TxStatus, bind_form: bool) -> ActionOutcome:
        self._move(key, ActionState.SETTLED_FAILED)
        message = status.error.message if status.error is not None else "transaction failed"
        logger.warning("%s failed (%s): %s", key, status.reason.value if status.reason else "unknown", message)
        if bind_form:
            self.form.fail(message)
        return ActionOutcome(
            action_key=key,
            state=ActionState.SETTLED_FAILED,
            handle=handle,
            status=status,
            error=status.error,
        )

    def _suppressed(self, key: str) -> ActionOutcome:
        logger.info("ignored repeated %s while it is %s", key, self.action_state(key).value)
        return ActionOutcome(
            action_key=key,
            state=self.action_state(key),
            handle=self.submitter.active_handle(key),
            suppressed=True,
        )

    def _editing(self, note_id: int) -> bool:
        return self.form.mode in {FormMode.EDITING, FormMode.ERROR} and self.form.draft.note_id == note_id

    def _cached_note(self, note_id: int | None) -> Note | None:
        if note_id is None:
            return None
        for result in self.cache.snapshot().values():
            if not isinstance(result.value, list):
                continue
            for note in result.value:
                if note.id == note_id:
                    return note
        return None

    def _views_to_invalidate(self, mutation: Mutation, sender: str, target: Note | None) -> list[ViewKey]:
        keys = affected_views(mutation, sender, target)
        if isinstance(mutation, TipNote) and target is None:
            # author unknown: any cached author view may list the tipped note
            keys += [k for k in self.cache.keys() if k.view is ReadView.USER_NOTES and k not in keys]
        return keys

    def _move(self, key: str, target: ActionState) -> None:
        current = self.action_state(key)
        if not can_transition(current, target):
            raise InvalidTransition(f"action {key} cannot move from {current.value} to {target.value}")
        if target is ActionState.IDLE:
            self._states.pop(key, None)
        else:
            self._states[key] = target
