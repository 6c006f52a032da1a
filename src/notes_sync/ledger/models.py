from dataclasses import dataclass, replace
from enum import Enum
from typing import Any


def as_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("expected an integer, got a boolean")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.lower().startswith("0x"):
            return int(text, 16)
        return int(text)
    raise ValueError(f"expected an integer, got {type(value).__name__}")


@dataclass(frozen=True)
class Note:
    id: int
    author: str
    title: str
    content: str
    created_at: int
    updated_at: int
    is_public: bool = False
    is_pinned: bool = False
    tips_received: int = 0
    version: int = 1

    @property
    def was_edited(self) -> bool:
        return self.updated_at > self.created_at

    def with_changes(self, **changes: Any) -> "Note":
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "author": self.author,
            "title": self.title,
            "content": self.content,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "isPublic": self.is_public,
            "isPinned": self.is_pinned,
            "tipsReceived": self.tips_received,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Note":
        try:
            return cls(
                id=as_int(data["id"]),
                author=str(data["author"]),
                title=str(data["title"]),
                content=str(data["content"]),
                created_at=as_int(data["createdAt"]),
                updated_at=as_int(data["updatedAt"]),
                is_public=bool(data.get("isPublic", False)),
                is_pinned=bool(data.get("isPinned", False)),
                tips_received=as_int(data.get("tipsReceived", 0)),
                version=as_int(data.get("version", 1)),
            )
        except KeyError as exc:
            raise ValueError(f"note payload missing field: {exc.args[0]}") from exc


@dataclass(frozen=True)
class NoteCreated:
    note_id: int
    author: str
    title: str
    is_public: bool

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NoteCreated":
        return cls(
            note_id=as_int(data["noteId"]),
            author=str(data["author"]),
            title=str(data.get("title", "")),
            is_public=bool(data.get("isPublic", False)),
        )


@dataclass(frozen=True)
class TxReceipt:
    tx_hash: str
    succeeded: bool
    block_number: int
    events: tuple[NoteCreated, ...] = ()
    revert_reason: str = ""

    def created_note_id(self) -> int | None:
        if not self.events:
            return None
        return self.events[0].note_id

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TxReceipt":
        events = []
        for log in data.get("events", []):
            if log.get("event") == "NoteCreated":
                events.append(NoteCreated.from_dict(log.get("args", {})))
        return cls(
            tx_hash=str(data["txHash"]),
            succeeded=bool(data["status"]),
            block_number=as_int(data["blockNumber"]),
            events=tuple(events),
            revert_reason=str(data.get("revertReason", "")),
        )


class TxLookupState(str, Enum):
    UNKNOWN = "unknown"
    PENDING = "pending"
    MINED = "mined"
    DROPPED = "dropped"


@dataclass(frozen=True)
class TxLookup:
    state: TxLookupState
    receipt: TxReceipt | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TxLookup":
        state = TxLookupState(data.get("state", TxLookupState.UNKNOWN.value))
        receipt_payload = data.get("receipt")
        receipt = TxReceipt.from_dict(receipt_payload) if receipt_payload else None
        if state is TxLookupState.MINED and receipt is None:
            raise ValueError("mined transaction lookup carries no receipt")
        return cls(state=state, receipt=receipt)
