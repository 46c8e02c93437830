# FILE: app/cache/__init__.py
"""
Cache layer.

Process-local TTL / single-flight cache for hosting-API fetches and the
distributed store holding precomputed repository context.
"""

from .ttl_cache import CacheEntry, TTLCache, SingleFlightCache
from .store import StoreError, KeyValueStore, RedisStore, MemoryStore, create_store
from .context_cache import RepoContext, ContextCache, context_key

__all__ = [
    "CacheEntry",
    "TTLCache",
    "SingleFlightCache",
    "StoreError",
    "KeyValueStore",
    "RedisStore",
    "MemoryStore",
    "create_store",
    "RepoContext",
    "ContextCache",
    "context_key",
]
