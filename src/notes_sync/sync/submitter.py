import asyncio
import logging
import uuid
from typing import Any, Callable

from notes_sync.contracts.action_dedup import ActiveActionLedger, claim_action, release_action
from notes_sync.contracts.tx_lifecycle import TxState, can_transition, is_terminal
from notes_sync.ledger import LedgerConnection
from notes_sync.sync.errors import (
    FailureReason,
    IdentityUnavailable,
    InvalidTransition,
    NetworkError,
    NotesSyncError,
    RevertedError,
    SubmissionRejected,
)
from notes_sync.sync.mutations import Mutation, action_key_for

logger = logging.getLogger(__name__)

HandleListener = Callable[["TxHandle"], None]


class TxHandle:
    """One submitted mutation attempt. Never reused once terminal."""

    def __init__(self, mutation: Mutation, sender: str, action_key: str) -> None:
        self.id = uuid.uuid4().hex
        self.mutation = mutation
        self.sender = sender
        self.action_key = action_key
        self.state = TxState.PENDING
        self.tx_hash: str | None = None
        self.result: Any = None
        self.receipt: Any = None
        self.error: NotesSyncError | None = None
        self.history: list[TxState] = [TxState.PENDING]
        self._listeners: list[HandleListener] = []
        self._done = asyncio.Event()

    @property
    def is_terminal(self) -> bool:
        return is_terminal(self.state)

    @property
    def failure_reason(self) -> FailureReason | None:
        if self.error is None:
            return None
        return getattr(self.error, "reason", None)

    def add_listener(self, listener: HandleListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def mark_confirming(self) -> None:
        self._advance(TxState.CONFIRMING)

    def confirm(self, result: Any = None, receipt: Any = None) -> None:
        self.result = result
        self.receipt = receipt
        self._advance(TxState.CONFIRMED)

    def fail(self, error: NotesSyncError) -> None:
        self.error = error
        self._advance(TxState.FAILED)

    async def wait(self) -> "TxHandle":
        await self._done.wait()
        return self

    def _advance(self, target: TxState) -> None:
        if not can_transition(self.state, target):
            raise InvalidTransition(f"handle {self.id} cannot move from {self.state.value} to {target.value}")
        self.state = target
        self.history.append(target)
        logger.debug("handle %s (%s) -> %s", self.id, self.mutation.kind.value, target.value)
        if self.is_terminal:
            self._done.set()
        for listener in list(self._listeners):
            listener(self)

    def __repr__(self) -> str:
        return f"TxHandle(id={self.id!r}, kind={self.mutation.kind.value!r}, state={self.state.value!r})"


class WriteSubmitter:
    def __init__(self, connection: LedgerConnection) -> None:
        self._connection = connection
        self._active = ActiveActionLedger()
        self._handles: dict[str, TxHandle] = {}

    def active_handle(self, action_key: str) -> TxHandle | None:
        handle_id = self._active.holder(action_key)
        if handle_id is None:
            return None
        return self._handles.get(handle_id)

    def is_active(self, action_key: str) -> bool:
        return self._active.holder(action_key) is not None

    async def submit(
        self, mutation: Mutation, sender: str | None, action_key: str | None = None
    ) -> TxHandle:
        """Validate and send ``mutation``.

        Validation errors raise before the ledger is contacted. While an earlier
        handle for the same action is unresolved, that handle is returned and
        nothing is sent. Signer rejections and transport failures come back as
        a handle that is already ``FAILED``.
        """
        mutation.validate()
        if not sender:
            raise IdentityUnavailable("connect a wallet before sending mutations")

        key = action_key or action_key_for(mutation)
        existing = self.active_handle(key)
        if existing is not None:
            logger.info("suppressed duplicate %s while %s is %s", key, existing.id, existing.state.value)
            return existing

        handle = TxHandle(mutation, sender, key)
        claim_action(self._active, key, handle.id)
        self._handles[handle.id] = handle
        handle.add_listener(self._release_when_terminal)

        try:
            tx_hash = await self._connection.send_transaction(
                mutation.function, mutation.call_args(), sender, mutation.value
            )
        except (SubmissionRejected, NetworkError, RevertedError) as exc:
            logger.warning("%s was not submitted: %s", mutation.function, exc)
            handle.fail(exc)
            return handle
        except BaseException as exc:
            # the claim must not outlive a send that never finished
            logger.warning("%s was abandoned during send: %r", mutation.function, exc)
            handle.fail(NetworkError(f"{mutation.function} was not submitted: {type(exc).__name__}"))
            raise

        handle.tx_hash = tx_hash
        logger.info("submitted %s as %s", mutation.function, tx_hash)
        return handle

    def _release_when_terminal(self, handle: TxHandle) -> None:
        if handle.is_terminal:
            release_action(self._active, handle.action_key, handle.id)
            self._handles.pop(handle.id, None)
