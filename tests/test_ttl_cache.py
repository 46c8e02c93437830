# FILE: tests/test_ttl_cache.py
"""
Tests for app/cache/ttl_cache.py
Process-local TTL cache and single-flight loading.
"""

import sys
from pathlib import Path

_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import asyncio

import pytest

from app.cache.ttl_cache import CacheEntry, SingleFlightCache, TTLCache


class TestTTLCache:
    """Expiry driven by the injected clock."""

    def test_entry_valid_before_ttl(self, clock):
        cache = TTLCache(ttl_seconds=300, clock=clock)
        cache.set("a/b", 1)
        clock.advance(299.9)
        entry = cache.get("a/b")
        assert isinstance(entry, CacheEntry)
        assert entry.data == 1

    def test_entry_expires_at_ttl(self, clock):
        cache = TTLCache(ttl_seconds=300, clock=clock)
        cache.set("a/b", 1)
        clock.advance(300)
        assert cache.get("a/b") is None
        assert len(cache) == 0

    def test_prune_removes_only_expired(self, clock):
        cache = TTLCache(ttl_seconds=10, clock=clock)
        cache.set("old", 1)
        clock.advance(6)
        cache.set("new", 2)
        clock.advance(5)
        assert cache.prune() == 1
        assert "new" in cache
        assert "old" not in cache

    def test_invalidate(self, clock):
        cache = TTLCache(clock=clock)
        cache.set("k", "v")
        assert cache.invalidate("k") is True
        assert cache.invalidate("k") is False


class TestSingleFlight:
    """Concurrent callers share one load; settled tasks are cached."""

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_load(self, clock):
        cache = SingleFlightCache(TTLCache(300, clock=clock))
        calls = 0

        async def load():
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)
            return "value"

        results = await asyncio.gather(*(cache.get_or_load("k", load) for _ in range(5)))

        assert results == ["value"] * 5
        assert calls == 1
        assert not cache.in_flight("k")

    @pytest.mark.asyncio
    async def test_settled_value_served_until_ttl(self, clock):
        cache = SingleFlightCache(TTLCache(300, clock=clock))
        calls = 0

        async def load():
            nonlocal calls
            calls += 1
            return calls

        assert await cache.get_or_load("k", load) == 1
        clock.advance(299)
        assert await cache.get_or_load("k", load) == 1
        clock.advance(1)
        assert await cache.get_or_load("k", load) == 2
        assert calls == 2

    @pytest.mark.asyncio
    async def test_failed_load_stays_cached_until_ttl(self, clock):
        """A rejected load is not retried inside the window."""
        cache = SingleFlightCache(TTLCache(300, clock=clock))
        calls = 0

        async def load():
            nonlocal calls
            calls += 1
            raise ValueError(f"boom {calls}")

        with pytest.raises(ValueError, match="boom 1"):
            await cache.get_or_load("k", load)
        with pytest.raises(ValueError, match="boom 1"):
            await cache.get_or_load("k", load)
        assert calls == 1

        clock.advance(300)
        with pytest.raises(ValueError, match="boom 2"):
            await cache.get_or_load("k", load)
        assert calls == 2

    @pytest.mark.asyncio
    async def test_invalidate_forces_reload_of_failure(self, clock):
        cache = SingleFlightCache(TTLCache(300, clock=clock))
        outcomes = [RuntimeError("down"), "ok"]

        async def load():
            result = outcomes.pop(0)
            if isinstance(result, Exception):
                raise result
            return result

        with pytest.raises(RuntimeError):
            await cache.get_or_load("k", load)
        cache.invalidate("k")
        assert await cache.get_or_load("k", load) == "ok"

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_shared_load(self, clock):
        cache = SingleFlightCache(TTLCache(300, clock=clock))
        release = asyncio.Event()
        calls = 0

        async def load():
            nonlocal calls
            calls += 1
            await release.wait()
            return "done"

        first = asyncio.ensure_future(cache.get_or_load("k", load))
        await asyncio.sleep(0)
        second = asyncio.ensure_future(cache.get_or_load("k", load))
        await asyncio.sleep(0)

        first.cancel()
        with pytest.raises(asyncio.CancelledError):
            await first

        release.set()
        assert await second == "done"
        assert calls == 1

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, clock):
        cache = SingleFlightCache(TTLCache(300, clock=clock))

        async def load_a():
            return "a"

        async def load_b():
            return "b"

        assert await cache.get_or_load("o/r/a", load_a) == "a"
        assert await cache.get_or_load("o/r/b", load_b) == "b"
