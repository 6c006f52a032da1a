import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable

from notes_sync.keys import ViewKey
from notes_sync.ledger import LedgerConnection

logger = logging.getLogger(__name__)

Subscriber = Callable[[ViewKey], Any]


@dataclass(frozen=True)
class CacheResult:
    value: Any
    is_stale: bool
    error: Exception | None = None
    has_value: bool = False
    is_fetching: bool = False
    enabled: bool = True


_DISABLED = CacheResult(value=None, is_stale=False, enabled=False)


class InvalidationBus:
    """Explicit publish/subscribe channel for ``key -> invalidated`` events."""

    def __init__(self) -> None:
        self._subscribers: dict[ViewKey, list[Subscriber]] = {}
        self._pending: set[asyncio.Task] = set()

    def subscribe(self, key: ViewKey, callback: Subscriber) -> Callable[[], None]:
        self._subscribers.setdefault(key, []).append(callback)

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(key, [])
            if callback in callbacks:
                callbacks.remove(callback)
            if not callbacks:
                self._subscribers.pop(key, None)

        return unsubscribe

    def subscriber_count(self, key: ViewKey) -> int:
        return len(self._subscribers.get(key, []))

    def publish(self, key: ViewKey) -> int:
        callbacks = list(self._subscribers.get(key, []))
        for callback in callbacks:
            try:
                result = callback(key)
            except Exception:
                logger.exception("invalidation subscriber failed for %s", key)
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._pending.add(task)
                task.add_done_callback(self._pending.discard)
        return len(callbacks)

    @property
    def has_pending(self) -> bool:
        return bool(self._pending)

    async def drain(self) -> None:
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self) -> None:
        for task in list(self._pending):
            task.cancel()
        await asyncio.gather(*list(self._pending), return_exceptions=True)
        self._pending.clear()
        self._subscribers.clear()


class _Entry:
    def __init__(self) -> None:
        self.value: Any = None
        self.has_value = False
        self.is_stale = False
        self.error: Exception | None = None
        # bumped on every invalidation; a fetch only counts as fresh for the
        # generation it started in
        self.generation = 0
        self.applied_generation = -1
        self.task: asyncio.Task | None = None
        self.task_generation = -1

    def result(self) -> CacheResult:
        return CacheResult(
            value=self.value,
            is_stale=self.is_stale,
            error=self.error,
            has_value=self.has_value,
            is_fetching=self.task is not None and not self.task.done(),
        )


class ReadQueryCache:
    """Memoised results of read-only ledger queries, keyed by ``ViewKey``.

    Constructed once per session and torn down with ``close()``. Reads never
    raise: a failed fetch keeps the previous value, marks it stale and carries
    the error in the returned ``CacheResult``.
    """

    def __init__(self, connection: LedgerConnection, bus: InvalidationBus | None = None) -> None:
        self._connection = connection
        self.bus = bus or InvalidationBus()
        self._entries: dict[ViewKey, _Entry] = {}
        self._tasks: set[asyncio.Task] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def get(self, key: ViewKey) -> CacheResult:
        if not key.enabled:
            return _DISABLED
        self._ensure_open()
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = _Entry()
            self._ensure_fetch(key, entry)
        return entry.result()

    def peek(self, key: ViewKey) -> CacheResult:
        if not key.enabled:
            return _DISABLED
        entry = self._entries.get(key)
        if entry is None:
            return CacheResult(value=None, is_stale=False)
        return entry.result()

    async def fetch(self, key: ViewKey) -> CacheResult:
        """Wait for a value that is current as of the latest invalidation."""
        if not key.enabled:
            return _DISABLED
        self._ensure_open()
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = _Entry()
        if entry.has_value and not entry.is_stale and entry.task is None:
            return entry.result()
        task = self._ensure_fetch(key, entry)
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            # only swallow the cancellation close() caused, never the caller's own
            if not (self._closed and task.cancelled()):
                raise
        return entry.result()

    def invalidate(self, key: ViewKey) -> None:
        if not key.enabled:
            return
        self._ensure_open()
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = _Entry()
        entry.generation += 1
        entry.is_stale = True
        logger.debug("invalidated %s (generation %d)", key, entry.generation)
        self._ensure_fetch(key, entry)
        self.bus.publish(key)

    def keys(self) -> list[ViewKey]:
        return list(self._entries)

    def snapshot(self) -> dict[ViewKey, CacheResult]:
        return {key: entry.result() for key, entry in self._entries.items()}

    async def settle(self) -> None:
        """Wait until no fetch is in flight and every subscriber has run."""
        while self._tasks or self.bus.has_pending:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
            await self.bus.drain()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
        self._tasks.clear()
        self._entries.clear()
        await self.bus.close()

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("read query cache is closed")

    def _ensure_fetch(self, key: ViewKey, entry: _Entry) -> asyncio.Task:
        if entry.task is not None and not entry.task.done() and entry.task_generation == entry.generation:
            return entry.task
        task = asyncio.ensure_future(self._run_fetch(key, entry, entry.generation))
        entry.task = task
        entry.task_generation = entry.generation
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run_fetch(self, key: ViewKey, entry: _Entry, generation: int) -> None:
        try:
            value = await self._connection.call(key.view.value, key.args)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if generation >= entry.applied_generation:
                logger.warning("fetch of %s failed, keeping last value: %s", key, exc)
                entry.error = exc
                entry.is_stale = True
            return
        finally:
            if entry.task is asyncio.current_task():
                entry.task = None

        if generation < entry.applied_generation:
            return
        entry.value = value
        entry.has_value = True
        entry.error = None
        entry.applied_generation = generation
        entry.is_stale = generation != entry.generation
