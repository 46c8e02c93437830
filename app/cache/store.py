# FILE: app/cache/store.py
"""
Key/value store backends shared by the rate limiter and the context cache.

Only plain string operations are used (get / set / setex / exists), so any
backend with those primitives works:
- RedisStore: redis.asyncio client, for multi-process deployments
- MemoryStore: in-process dict with expiry, used when REDIS_URL is unset
  and in tests

Every backend failure surfaces as StoreError. Callers decide whether to
swallow it (rate limiter, context cache reads) or propagate it.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Dict, Optional, Protocol, Tuple

from redis import asyncio as aioredis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """The backing key/value store could not complete an operation."""
    pass


class KeyValueStore(Protocol):
    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str) -> None: ...

    async def setex(self, key: str, seconds: int, value: str) -> None: ...

    async def exists(self, key: str) -> bool: ...

    async def close(self) -> None: ...


# =============================================================================
# REDIS
# =============================================================================

class RedisStore:
    """KeyValueStore on top of redis.asyncio."""

    def __init__(self, url: str, client: Optional[aioredis.Redis] = None):
        self.url = url
        self._client = client

    @property
    def client(self) -> aioredis.Redis:
        if self._client is None:
            self._client = aioredis.from_url(self.url, decode_responses=True)
        return self._client

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self.client.get(key)
        except RedisError as e:
            raise StoreError(f"GET {key} failed: {e}") from e

    async def set(self, key: str, value: str) -> None:
        try:
            await self.client.set(key, value)
        except RedisError as e:
            raise StoreError(f"SET {key} failed: {e}") from e

    async def setex(self, key: str, seconds: int, value: str) -> None:
        try:
            await self.client.setex(key, seconds, value)
        except RedisError as e:
            raise StoreError(f"SETEX {key} failed: {e}") from e

    async def exists(self, key: str) -> bool:
        try:
            return bool(await self.client.exists(key))
        except RedisError as e:
            raise StoreError(f"EXISTS {key} failed: {e}") from e

    async def close(self) -> None:
        if self._client is not None:
            try:
                await self._client.aclose()
            except RedisError as e:
                logger.warning("[store] Error closing redis client: %s", e)
            self._client = None


# =============================================================================
# IN-MEMORY
# =============================================================================

class MemoryStore:
    """
    Process-local KeyValueStore.

    Expiry uses an injected wall clock (epoch seconds) so tests can move time
    forward without sleeping.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}

    def _live(self, key: str) -> Optional[str]:
        item = self._data.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at is not None and self._clock() >= expires_at:
            del self._data[key]
            return None
        return value

    async def get(self, key: str) -> Optional[str]:
        return self._live(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = (value, None)

    async def setex(self, key: str, seconds: int, value: str) -> None:
        if seconds <= 0:
            raise StoreError(f"invalid expire time in setex: {seconds}")
        self._data[key] = (value, self._clock() + seconds)

    async def exists(self, key: str) -> bool:
        return self._live(key) is not None

    async def close(self) -> None:
        self._data.clear()


def create_store(redis_url: Optional[str]) -> KeyValueStore:
    """Redis when a URL is configured, otherwise the in-process store."""
    if redis_url:
        logger.info("[store] Using redis store")
        return RedisStore(redis_url)
    logger.warning("[store] REDIS_URL not set, using in-memory store (quota is per process)")
    return MemoryStore()
