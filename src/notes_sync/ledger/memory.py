import asyncio
import hashlib
import logging
from dataclasses import dataclass
from typing import Any

from notes_sync.ledger import READ_FUNCTIONS, WRITE_FUNCTIONS, LedgerConnection
from notes_sync.ledger.models import Note, NoteCreated, TxLookup, TxLookupState, TxReceipt
from notes_sync.sync.errors import NetworkError, SubmissionRejected

logger = logging.getLogger(__name__)


class _Revert(Exception):
    pass


@dataclass(frozen=True)
class _PendingTx:
    tx_hash: str
    function: str
    args: tuple[Any, ...]
    sender: str
    value: int


def _same_address(left: str, right: str) -> bool:
    return left.lower() == right.lower()


class InMemoryLedger(LedgerConnection):
    """Local stand-in for the notes contract and the node in front of it.

    Transactions wait in a mempool until ``mine()`` is called, unless
    ``auto_mine`` is set. Faults can be injected with ``go_offline()``,
    ``reject_signatures_from()`` and ``drop()``.
    """

    def __init__(
        self,
        auto_mine: bool = False,
        genesis_time: int = 1_700_000_000,
        block_time: int = 12,
        latency: float = 0.0,
    ) -> None:
        self.auto_mine = auto_mine
        self.latency = latency
        self._genesis_time = genesis_time
        self._block_time = block_time
        self._block_number = 0
        self._next_note_id = 1
        self._tx_counter = 0
        self._notes: dict[int, Note] = {}
        self._mempool: list[_PendingTx] = []
        self._receipts: dict[str, TxReceipt] = {}
        self._dropped: set[str] = set()
        self._offline = False
        self._rejecting_signers: set[str] = set()
        self.read_log: list[tuple[str, tuple[Any, ...]]] = []
        self.sent_log: list[tuple[str, tuple[Any, ...], str, int]] = []

    # fault injection

    def go_offline(self) -> None:
        self._offline = True

    def go_online(self) -> None:
        self._offline = False

    def reject_signatures_from(self, address: str) -> None:
        self._rejecting_signers.add(address.lower())

    def drop(self, tx_hash: str) -> None:
        before = len(self._mempool)
        self._mempool = [tx for tx in self._mempool if tx.tx_hash != tx_hash]
        if len(self._mempool) == before:
            raise ValueError(f"transaction is not pending: {tx_hash}")
        self._dropped.add(tx_hash)

    # inspection

    def note(self, note_id: int) -> Note | None:
        return self._notes.get(note_id)

    def pending_hashes(self) -> list[str]:
        return [tx.tx_hash for tx in self._mempool]

    # LedgerConnection

    async def call(self, function: str, args: tuple[Any, ...] = ()) -> Any:
        await self._network_hop()
        if function not in READ_FUNCTIONS:
            raise ValueError(f"unknown read function: {function}")
        self.read_log.append((function, tuple(args)))

        if function == "getPublicNotes":
            return [note for note in self._sorted_notes() if note.is_public]

        (user,) = args
        owned = [note for note in self._sorted_notes() if _same_address(note.author, user)]
        if function == "getUserNotes":
            return owned
        if function == "getPinnedNotes":
            return [note for note in owned if note.is_pinned]
        return len(owned)

    async def send_transaction(
        self, function: str, args: tuple[Any, ...], sender: str, value: int = 0
    ) -> str:
        await self._network_hop()
        if function not in WRITE_FUNCTIONS:
            raise ValueError(f"unknown write function: {function}")
        if sender.lower() in self._rejecting_signers:
            raise SubmissionRejected("user rejected the request")

        self._tx_counter += 1
        digest = hashlib.sha256(f"{sender}:{function}:{self._tx_counter}".encode("utf-8")).hexdigest()
        tx_hash = f"0x{digest}"
        self._mempool.append(
            _PendingTx(tx_hash=tx_hash, function=function, args=tuple(args), sender=sender, value=value)
        )
        self.sent_log.append((function, tuple(args), sender, value))
        if self.auto_mine:
            self.mine()
        return tx_hash

    async def get_transaction(self, tx_hash: str) -> TxLookup:
        await self._network_hop()
        if tx_hash in self._receipts:
            return TxLookup(state=TxLookupState.MINED, receipt=self._receipts[tx_hash])
        if tx_hash in self._dropped:
            return TxLookup(state=TxLookupState.DROPPED)
        if any(tx.tx_hash == tx_hash for tx in self._mempool):
            return TxLookup(state=TxLookupState.PENDING)
        return TxLookup(state=TxLookupState.UNKNOWN)

    async def block_number(self) -> int:
        await self._network_hop()
        return self._block_number

    # block production

    def mine(self, blocks: int = 1) -> list[TxReceipt]:
        receipts: list[TxReceipt] = []
        for _ in range(blocks):
            self._block_number += 1
            timestamp = self._genesis_time + self._block_number * self._block_time
            batch, self._mempool = self._mempool, []
            for tx in batch:
                receipt = self._execute(tx, timestamp)
                self._receipts[tx.tx_hash] = receipt
                receipts.append(receipt)
        return receipts

    def _execute(self, tx: _PendingTx, timestamp: int) -> TxReceipt:
        handler = getattr(self, f"_apply_{tx.function}")
        try:
            events = handler(tx, timestamp)
        except _Revert as exc:
            logger.debug("transaction %s reverted: %s", tx.tx_hash, exc)
            return TxReceipt(
                tx_hash=tx.tx_hash,
                succeeded=False,
                block_number=self._block_number,
                revert_reason=str(exc),
            )
        return TxReceipt(
            tx_hash=tx.tx_hash,
            succeeded=True,
            block_number=self._block_number,
            events=tuple(events),
        )

    def _apply_createNote(self, tx: _PendingTx, timestamp: int) -> list[NoteCreated]:
        title, content, is_public = tx.args
        self._require_text(title, content)
        note = Note(
            id=self._next_note_id,
            author=tx.sender,
            title=title,
            content=content,
            created_at=timestamp,
            updated_at=timestamp,
            is_public=bool(is_public),
        )
        self._next_note_id += 1
        self._notes[note.id] = note
        return [NoteCreated(note_id=note.id, author=tx.sender, title=title, is_public=note.is_public)]

    def _apply_updateNote(self, tx: _PendingTx, timestamp: int) -> list[NoteCreated]:
        note_id, title, content = tx.args
        note = self._owned_note(note_id, tx.sender)
        self._require_text(title, content)
        self._notes[note.id] = note.with_changes(
            title=title,
            content=content,
            updated_at=timestamp,
            version=note.version + 1,
        )
        return []

    def _apply_deleteNote(self, tx: _PendingTx, timestamp: int) -> list[NoteCreated]:
        (note_id,) = tx.args
        note = self._owned_note(note_id, tx.sender)
        del self._notes[note.id]
        return []

    def _apply_toggleNoteVisibility(self, tx: _PendingTx, timestamp: int) -> list[NoteCreated]:
        (note_id,) = tx.args
        note = self._owned_note(note_id, tx.sender)
        self._notes[note.id] = note.with_changes(is_public=not note.is_public)
        return []

    def _apply_togglePinNote(self, tx: _PendingTx, timestamp: int) -> list[NoteCreated]:
        (note_id,) = tx.args
        note = self._owned_note(note_id, tx.sender)
        self._notes[note.id] = note.with_changes(is_pinned=not note.is_pinned)
        return []

    def _apply_tipNote(self, tx: _PendingTx, timestamp: int) -> list[NoteCreated]:
        (note_id,) = tx.args
        note = self._existing_note(note_id)
        if tx.value <= 0:
            raise _Revert("Tip amount must be greater than 0")
        self._notes[note.id] = note.with_changes(tips_received=note.tips_received + tx.value)
        return []

    def _existing_note(self, note_id: int) -> Note:
        note = self._notes.get(int(note_id))
        if note is None:
            raise _Revert("Note does not exist")
        return note

    def _owned_note(self, note_id: int, sender: str) -> Note:
        note = self._existing_note(note_id)
        if not _same_address(note.author, sender):
            raise _Revert("Only the author can modify this note")
        return note

    @staticmethod
    def _require_text(title: str, content: str) -> None:
        if not title:
            raise _Revert("Title cannot be empty")
        if not content:
            raise _Revert("Content cannot be empty")

    def _sorted_notes(self) -> list[Note]:
        return [self._notes[note_id] for note_id in sorted(self._notes)]

    async def _network_hop(self) -> None:
        await asyncio.sleep(self.latency)
        if self._offline:
            raise NetworkError("ledger node is unreachable")
