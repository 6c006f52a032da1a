from abc import ABC, abstractmethod
from typing import Any

from notes_sync.ledger.models import Note, NoteCreated, TxLookup, TxLookupState, TxReceipt

READ_FUNCTIONS = frozenset({"getUserNotes", "getPublicNotes", "getPinnedNotes", "getUserNoteCount"})

WRITE_FUNCTIONS = frozenset(
    {"createNote", "updateNote", "deleteNote", "toggleNoteVisibility", "togglePinNote", "tipNote"}
)


class LedgerConnection(ABC):
    @abstractmethod
    async def call(self, function: str, args: tuple[Any, ...] = ()) -> Any:
        """Run a read-only contract function. Notes come back as Note, counts as int."""
        pass

    @abstractmethod
    async def send_transaction(
        self, function: str, args: tuple[Any, ...], sender: str, value: int = 0
    ) -> str:
        """Sign and broadcast a mutation, returning its transaction hash.

        Raises SubmissionRejected when the signer declines and NetworkError when
        the node cannot be reached.
        """
        pass

    @abstractmethod
    async def get_transaction(self, tx_hash: str) -> TxLookup:
        """Look up where a broadcast transaction currently stands."""
        pass

    @abstractmethod
    async def block_number(self) -> int:
        """Return the latest block height known to the node."""
        pass

    async def close(self) -> None:
        return None


__all__ = [
    "LedgerConnection",
    "Note",
    "NoteCreated",
    "READ_FUNCTIONS",
    "TxLookup",
    "TxLookupState",
    "TxReceipt",
    "WRITE_FUNCTIONS",
]
