import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from notes_sync.keys import ViewKey, pinned_notes, public_notes, user_note_count, user_notes
from notes_sync.ledger.models import Note
from notes_sync.sync.cache import CacheResult, ReadQueryCache
from notes_sync.sync.identity import IdentityProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BoardSnapshot:
    address: str | None
    my_notes: list[Note]
    pinned_notes: list[Note]
    public_notes: list[Note]
    note_count: int
    views: dict[str, CacheResult] = field(default_factory=dict)

    @property
    def is_connected(self) -> bool:
        return self.address is not None

    @property
    def pinned_count(self) -> int:
        return len(self.pinned_notes)

    @property
    def is_stale(self) -> bool:
        return any(view.is_stale for view in self.views.values() if view.enabled)


class NotesBoard:
    """The notes screen's data: one subscriber per read view.

    Refetches a view whenever the orchestrator reports it invalidated, and
    follows identity changes by moving its subscriptions to the new address.
    """

    def __init__(self, cache: ReadQueryCache, identity: IdentityProvider) -> None:
        self.cache = cache
        self.identity = identity
        self.refetch_counts: dict[ViewKey, int] = {}
        self._unsubscribers: list[Callable[[], None]] = []
        self._remove_identity_listener: Callable[[], None] | None = None

    def view_keys(self) -> dict[str, ViewKey]:
        address = self.identity.address
        return {
            "my_notes": user_notes(address),
            "pinned_notes": pinned_notes(address),
            "public_notes": public_notes(),
            "note_count": user_note_count(address),
        }

    def open(self) -> None:
        if self._remove_identity_listener is None:
            self._remove_identity_listener = self.identity.add_listener(self._on_identity_changed)
        self._subscribe()

    def close(self) -> None:
        self._unsubscribe()
        if self._remove_identity_listener is not None:
            self._remove_identity_listener()
            self._remove_identity_listener = None

    async def refresh(self) -> BoardSnapshot:
        await asyncio.gather(*(self.cache.fetch(key) for key in self.view_keys().values()))
        return self.snapshot()

    def snapshot(self) -> BoardSnapshot:
        views = {name: self.cache.peek(key) for name, key in self.view_keys().items()}
        return BoardSnapshot(
            address=self.identity.address,
            my_notes=list(_value_or(views["my_notes"], [])),
            pinned_notes=list(_value_or(views["pinned_notes"], [])),
            public_notes=list(_value_or(views["public_notes"], [])),
            note_count=int(_value_or(views["note_count"], 0)),
            views=views,
        )

    def _subscribe(self) -> None:
        for key in self.view_keys().values():
            if not key.enabled:
                continue
            self._unsubscribers.append(self.cache.bus.subscribe(key, self._on_invalidated))
            self.cache.get(key)

    def _unsubscribe(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    def _on_identity_changed(self, address: str | None) -> None:
        self._unsubscribe()
        self._subscribe()

    async def _on_invalidated(self, key: ViewKey) -> None:
        self.refetch_counts[key] = self.refetch_counts.get(key, 0) + 1
        result = await self.cache.fetch(key)
        if result.error is not None:
            logger.warning("board view %s is showing stale data: %s", key, result.error)


def _value_or(result: CacheResult, default: Any) -> Any:
    if not result.has_value:
        return default
    return result.value
