# FILE: app/ratelimit/limiter.py
"""
Per-client daily quota backed by the shared key/value store.

Fixed window: the first charged request of an identity opens a window of
``window_seconds``; the record expires with the window and the next request
starts a fresh one. The window never slides.

Record (key ``ratelimit:<identity>``): JSON ``{"count": int, "resetAt": epoch}``

check()      pure read, nothing persisted; allowed = count < limit
increment()  read-modify-write; allowed = count <= limit

The two comparisons differ by one: the increment that brings
count to exactly ``limit`` still reports allowed, and the following check
denies. check and increment are separate round trips, so two concurrent
requests from one identity can both pass check before either increments.

Fail open: any store failure yields an allowed result and is only logged.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from app.cache.store import KeyValueStore

logger = logging.getLogger(__name__)

DAILY_LIMIT = 20
WINDOW_SECONDS = 24 * 60 * 60
KEY_PREFIX = "ratelimit:"


@dataclass
class RateLimitInfo:
    allowed: bool
    remaining: int
    limit: int
    reset_at: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allowed": self.allowed,
            "remaining": self.remaining,
            "limit": self.limit,
            "resetAt": self.reset_at,
        }


@dataclass
class RateLimitRecord:
    count: int
    reset_at: int

    def to_json(self) -> str:
        return json.dumps({"count": self.count, "resetAt": self.reset_at})

    @classmethod
    def from_json(cls, raw: str) -> "RateLimitRecord":
        data = json.loads(raw)
        return cls(count=int(data["count"]), reset_at=int(data["resetAt"]))


class RateLimiter:
    """Fixed-window, fail-open quota counter."""

    def __init__(
        self,
        store: KeyValueStore,
        limit: int = DAILY_LIMIT,
        window_seconds: int = WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock

    @staticmethod
    def key(identity: str) -> str:
        return f"{KEY_PREFIX}{identity}"

    def _now(self) -> int:
        return int(self._clock())

    async def _load(self, identity: str) -> Optional[RateLimitRecord]:
        raw = await self.store.get(self.key(identity))
        if not raw:
            return None
        return RateLimitRecord.from_json(raw)

    async def check(self, identity: str) -> RateLimitInfo:
        """Current quota for ``identity``. Never writes."""
        try:
            record = await self._load(identity)
            if record is None:
                return RateLimitInfo(
                    allowed=True,
                    remaining=self.limit,
                    limit=self.limit,
                    reset_at=self._now() + self.window_seconds,
                )
            return RateLimitInfo(
                allowed=record.count < self.limit,
                remaining=max(0, self.limit - record.count),
                limit=self.limit,
                reset_at=record.reset_at,
            )
        except Exception as e:
            logger.error("[ratelimit] Rate limit check error: %s", e)
            return RateLimitInfo(
                allowed=True,
                remaining=self.limit,
                limit=self.limit,
                reset_at=self._now() + self.window_seconds,
            )

    async def increment(self, identity: str) -> RateLimitInfo:
        """Charge one request to ``identity`` and return the updated quota."""
        try:
            record = await self._load(identity)
            now = self._now()
            if record is None:
                record = RateLimitRecord(count=1, reset_at=now + self.window_seconds)
            else:
                record = RateLimitRecord(count=record.count + 1, reset_at=record.reset_at)

            ttl = record.reset_at - now
            if ttl > 0:
                await self.store.setex(self.key(identity), ttl, record.to_json())

            logger.info("[ratelimit] Rate limit for %s: %d/%d used", identity, record.count, self.limit)

            return RateLimitInfo(
                allowed=record.count <= self.limit,
                remaining=max(0, self.limit - record.count),
                limit=self.limit,
                reset_at=record.reset_at,
            )
        except Exception as e:
            logger.error("[ratelimit] Rate limit increment error: %s", e)
            return RateLimitInfo(
                allowed=True,
                remaining=self.limit - 1,
                limit=self.limit,
                reset_at=self._now() + self.window_seconds,
            )
