from dataclasses import dataclass
from enum import Enum
from typing import Any

from notes_sync.units import normalize_address


class ReadView(str, Enum):
    USER_NOTES = "getUserNotes"
    PUBLIC_NOTES = "getPublicNotes"
    PINNED_NOTES = "getPinnedNotes"
    USER_NOTE_COUNT = "getUserNoteCount"


@dataclass(frozen=True)
class ViewKey:
    view: ReadView
    args: tuple[Any, ...] = ()

    @property
    def enabled(self) -> bool:
        # user-scoped views stay disabled until an address is known
        return all(arg is not None for arg in self.args)

    def __str__(self) -> str:
        rendered = ", ".join(str(arg) for arg in self.args)
        return f"{self.view.name}({rendered})"


def _address_arg(address: str | None) -> str | None:
    return normalize_address(address) if address else None


def user_notes(address: str | None) -> ViewKey:
    return ViewKey(ReadView.USER_NOTES, (_address_arg(address),))


def public_notes() -> ViewKey:
    return ViewKey(ReadView.PUBLIC_NOTES, ())


def pinned_notes(address: str | None) -> ViewKey:
    return ViewKey(ReadView.PINNED_NOTES, (_address_arg(address),))


def user_note_count(address: str | None) -> ViewKey:
    return ViewKey(ReadView.USER_NOTE_COUNT, (_address_arg(address),))
