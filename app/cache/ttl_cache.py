# FILE: app/cache/ttl_cache.py
"""
Process-local cache tier.

Two pieces:
- TTLCache: key -> CacheEntry, valid while ``clock() - timestamp < ttl``
- SingleFlightCache: caches the *operation* rather than its value. Concurrent
  callers for the same key await one shared task; once it settles the task
  itself (result or exception) moves into the TTL cache.

A failed load stays cached as a rejected task until the entry expires, so
every caller inside the window sees the same exception and the upstream is
not hit again. Callers that need a retry must ``invalidate`` the key.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TTL_SECONDS = 5 * 60


# =============================================================================
# TTL CACHE
# =============================================================================

@dataclass
class CacheEntry(Generic[T]):
    """Cached value and the clock reading it was stored at."""
    data: T
    timestamp: float


class TTLCache:
    """Dict-backed cache with a fixed time-to-live and an injectable clock."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry[Any]] = {}

    def is_valid(self, entry: Optional[CacheEntry[Any]]) -> bool:
        return entry is not None and (self._clock() - entry.timestamp) < self.ttl_seconds

    def get(self, key: str) -> Optional[CacheEntry[Any]]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not self.is_valid(entry):
            del self._entries[key]
            return None
        return entry

    def set(self, key: str, data: Any) -> CacheEntry[Any]:
        entry = CacheEntry(data=data, timestamp=self._clock())
        self._entries[key] = entry
        return entry

    def invalidate(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def prune(self) -> int:
        """Drop expired entries. Returns how many were removed."""
        expired = [k for k, e in self._entries.items() if not self.is_valid(e)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)


# =============================================================================
# SINGLE-FLIGHT
# =============================================================================

class SingleFlightCache:
    """
    TTL cache whose values are settled asyncio tasks.

    get_or_load(key, factory):
      1. valid cached task -> await it (returns the value or re-raises)
      2. task already in flight for key -> await the same task
      3. otherwise start factory() as a task and register it as in flight

    When the task settles it is evicted from the in-flight map and stored in
    the TTL cache. Waiters are shielded, so a cancelled caller does not
    cancel the shared load.
    """

    def __init__(self, cache: Optional[TTLCache] = None, name: str = "cache"):
        self.cache = cache or TTLCache()
        self.name = name
        self._in_flight: Dict[str, "asyncio.Future[Any]"] = {}

    def in_flight(self, key: str) -> bool:
        return key in self._in_flight

    async def get_or_load(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        entry = self.cache.get(key)
        if entry is not None:
            logger.debug("[cache] %s hit: %s", self.name, key)
            return await entry.data

        task = self._in_flight.get(key)
        if task is None:
            logger.debug("[cache] %s miss: %s", self.name, key)
            task = asyncio.ensure_future(factory())
            self._in_flight[key] = task
            task.add_done_callback(lambda t, k=key: self._settle(k, t))
        else:
            logger.debug("[cache] %s joining in-flight load: %s", self.name, key)

        return await asyncio.shield(task)

    def _settle(self, key: str, task: "asyncio.Future[Any]") -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        if task.cancelled():
            return
        if task.exception() is not None:
            logger.warning("[cache] %s caching failed load for %s: %s", self.name, key, task.exception())
        self.cache.set(key, task)

    def invalidate(self, key: str) -> bool:
        return self.cache.invalidate(key)

    def clear(self) -> None:
        self.cache.clear()
