import asyncio
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator

from notes_sync.contracts.tx_lifecycle import TxState, is_terminal
from notes_sync.ledger import LedgerConnection
from notes_sync.ledger.config import LedgerConfig, get_ledger_config
from notes_sync.ledger.models import TxLookupState
from notes_sync.sync.errors import DroppedError, FailureReason, NetworkError, NotesSyncError, RevertedError
from notes_sync.sync.submitter import TxHandle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TxStatus:
    state: TxState
    tx_hash: str | None = None
    result: Any = None
    error: NotesSyncError | None = None
    reason: FailureReason | None = None

    @property
    def is_terminal(self) -> bool:
        return is_terminal(self.state)

    @classmethod
    def from_handle(cls, handle: TxHandle) -> "TxStatus":
        return cls(
            state=handle.state,
            tx_hash=handle.tx_hash,
            result=handle.result,
            error=handle.error,
            reason=handle.failure_reason,
        )


class ConfirmationWatcher:
    """Follows handles from network acceptance to finality.

    Each handle gets one background tracker that runs until the ledger
    resolves it. ``watch()`` only listens to that tracker, so abandoning a
    watch leaves the resolution untouched. There is no timeout on
    ``CONFIRMING``.
    """

    def __init__(
        self,
        connection: LedgerConnection,
        poll_interval: float = 1.0,
        confirmations: int = 1,
    ) -> None:
        if confirmations < 1:
            raise ValueError("confirmations must be >= 1")
        self._connection = connection
        self.poll_interval = poll_interval
        self.confirmations = confirmations
        self._trackers: dict[str, asyncio.Task] = {}

    @classmethod
    def from_config(
        cls, connection: LedgerConnection, config: LedgerConfig | None = None
    ) -> "ConfirmationWatcher":
        config = config or get_ledger_config()
        return cls(connection, poll_interval=config.poll_interval, confirmations=config.confirmations)

    def track(self, handle: TxHandle) -> asyncio.Task | None:
        if handle.is_terminal or handle.tx_hash is None:
            return None
        tracker = self._trackers.get(handle.id)
        if tracker is None:
            tracker = asyncio.ensure_future(self._follow(handle))
            self._trackers[handle.id] = tracker
            tracker.add_done_callback(lambda _: self._trackers.pop(handle.id, None))
        return tracker

    async def watch(self, handle: TxHandle) -> AsyncIterator[TxStatus]:
        updates: asyncio.Queue[TxStatus] = asyncio.Queue()
        remove = handle.add_listener(lambda h: updates.put_nowait(TxStatus.from_handle(h)))
        try:
            current = TxStatus.from_handle(handle)
            if not current.is_terminal:
                self.track(handle)
            yield current
            if current.is_terminal:
                return
            while True:
                status = await updates.get()
                yield status
                if status.is_terminal:
                    return
        finally:
            remove()

    async def wait(self, handle: TxHandle) -> TxStatus:
        last = TxStatus.from_handle(handle)
        async for status in self.watch(handle):
            last = status
        return last

    async def close(self) -> None:
        trackers = list(self._trackers.values())
        for tracker in trackers:
            tracker.cancel()
        await asyncio.gather(*trackers, return_exceptions=True)
        self._trackers.clear()

    async def _follow(self, handle: TxHandle) -> None:
        while not handle.is_terminal:
            try:
                await self._poll_once(handle)
            except NetworkError as exc:
                # the transaction may still land; keep observing
                logger.warning("lookup of %s failed, will retry: %s", handle.tx_hash, exc)
            except Exception as exc:
                logger.exception("tracking of %s stopped", handle.tx_hash)
                if not handle.is_terminal:
                    handle.fail(NetworkError(f"could not follow transaction {handle.tx_hash}: {exc}"))
                return
            if not handle.is_terminal:
                await asyncio.sleep(self.poll_interval)

    async def _poll_once(self, handle: TxHandle) -> None:
        lookup = await self._connection.get_transaction(handle.tx_hash)

        if lookup.state is TxLookupState.UNKNOWN:
            return

        if lookup.state is TxLookupState.DROPPED:
            logger.warning("transaction %s was dropped", handle.tx_hash)
            handle.fail(DroppedError(f"transaction {handle.tx_hash} was dropped by the network"))
            return

        if handle.state is TxState.PENDING:
            handle.mark_confirming()

        if lookup.state is TxLookupState.PENDING:
            return

        receipt = lookup.receipt
        if not receipt.succeeded:
            reason = receipt.revert_reason or "execution reverted"
            logger.warning("transaction %s reverted: %s", handle.tx_hash, reason)
            handle.fail(RevertedError(f"ledger rejected {handle.mutation.function}: {reason}", revert_reason=reason))
            return

        head = await self._connection.block_number()
        depth = head - receipt.block_number + 1
        if depth >= self.confirmations:
            handle.confirm(result=receipt.created_note_id(), receipt=receipt)
