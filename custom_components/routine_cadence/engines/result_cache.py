"""Short-lived memoization of item evaluations.

The cache absorbs repeated reads of the same evaluation within a few seconds
(for example several dashboard cards asking about the same item). It is never
a source of freshness: mutations invalidate it explicitly and entries expire
after the TTL regardless.

Keys are `(section, item_id, reference_day, live_completed)`.

Invalidation:
- invalidate_item(section, item_id): drops every key with that prefix
- invalidate_all(): drops everything

Listeners registered through add_listener() are told which invalidation
happened, so every trigger is traceable to a caller.

ARCHITECTURE: Pure Python, NO Home Assistant dependencies. One instance is
owned by each coordinator and injected into the evaluator.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
import time
from typing import Any, TypeVar

from .. import const

CacheKey = tuple[str, str, str, bool]
CacheListener = Callable[[str, dict[str, Any]], None]

_T = TypeVar("_T")


@dataclass
class CacheStats:
    """Hit/miss counters for diagnostics and tests."""

    hits: int = 0
    misses: int = 0
    size: int = 0


class ResultCache:
    """TTL cache with prefix invalidation and an explicit listener API."""

    def __init__(
        self,
        ttl: float = const.DEFAULT_CACHE_TTL,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the cache.

        Args:
            ttl: Seconds an entry stays valid
            clock: Monotonic clock (injectable for tests)
        """
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[CacheKey, tuple[float, Any]] = {}
        self._listeners: list[CacheListener] = []
        self._hits = 0
        self._misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def ttl(self) -> float:
        """Configured time-to-live in seconds."""
        return self._ttl

    @property
    def stats(self) -> CacheStats:
        """Current hit/miss counters."""
        return CacheStats(hits=self._hits, misses=self._misses, size=len(self._entries))

    @staticmethod
    def make_key(
        section: str, item_id: str, reference_day: str, live_completed: bool
    ) -> CacheKey:
        """Build a cache key."""
        return (section, item_id, reference_day, bool(live_completed))

    def get(self, key: CacheKey) -> Any | None:
        """Return a cached value, or None if missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            self._misses += 1
            return None
        self._hits += 1
        return value

    def set(self, key: CacheKey, value: Any) -> None:
        """Store a value for the configured TTL.

        Expired entries are dropped first, so keys that are never read again
        (past reference days) do not accumulate.
        """
        now = self._clock()
        self.prune_expired(now)
        self._entries[key] = (now + self._ttl, value)

    def prune_expired(self, now: float | None = None) -> int:
        """Drop every expired entry. Returns the number removed."""
        if now is None:
            now = self._clock()
        stale = [
            key for key, (expires_at, _) in self._entries.items() if now >= expires_at
        ]
        for key in stale:
            del self._entries[key]
        return len(stale)

    async def async_get_or_compute(
        self, key: CacheKey, compute: Callable[[], Awaitable[_T]]
    ) -> _T:
        """Return the cached value for `key`, computing and storing it on a miss.

        Exceptions raised by `compute` propagate and nothing is cached.
        """
        cached = self.get(key)
        if cached is not None:
            const.LOGGER.debug("DEBUG: Cache hit for %s", key)
            return cached
        const.LOGGER.debug("DEBUG: Cache miss for %s, computing", key)
        value = await compute()
        self.set(key, value)
        return value

    def invalidate_item(self, section: str, item_id: str) -> int:
        """Drop every entry of one item. Returns the number removed."""
        stale = [
            key for key in self._entries if key[0] == section and key[1] == item_id
        ]
        for key in stale:
            del self._entries[key]
        self._notify(
            const.CACHE_EVENT_ITEM_TOGGLED,
            {const.FIELD_SECTION: section, const.FIELD_ITEM_ID: item_id},
        )
        return len(stale)

    def invalidate_all(self) -> int:
        """Drop every entry. Returns the number removed."""
        removed = len(self._entries)
        self._entries.clear()
        self._notify(const.CACHE_EVENT_ROUTINE_UPDATED, {})
        return removed

    def add_listener(self, listener: CacheListener) -> Callable[[], None]:
        """Register an invalidation listener. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, event: str, payload: dict[str, Any]) -> None:
        for listener in list(self._listeners):
            listener(event, payload)
