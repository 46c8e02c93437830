# FILE: app/cache/context_cache.py
"""
Distributed cache tier: precomputed whole-repository context.

Stores a ``{tree, content}`` JSON blob per repository so that repeated
questions (from any process) skip a full repository traversal. The blob is
written by the background population task / collect endpoint and read by
the query orchestrator.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Optional

from app.cache.store import KeyValueStore

logger = logging.getLogger(__name__)

CONTEXT_KEY_PREFIX = "repo-context:"
DEFAULT_CONTEXT_TTL_SECONDS = 60 * 60


@dataclass
class RepoContext:
    """Rendered file tree plus concatenated file contents for one repository."""
    tree: str
    content: str

    def to_json(self) -> str:
        return json.dumps({"tree": self.tree, "content": self.content})

    @classmethod
    def from_json(cls, raw: str) -> "RepoContext":
        data = json.loads(raw)
        return cls(tree=str(data.get("tree", "")), content=str(data.get("content", "")))


def context_key(owner: str, repo: str) -> str:
    return f"{CONTEXT_KEY_PREFIX}{owner}/{repo}"


class ContextCache:
    """Reads and writes RepoContext blobs. Store errors propagate as StoreError."""

    def __init__(self, store: KeyValueStore, ttl_seconds: int = DEFAULT_CONTEXT_TTL_SECONDS):
        self.store = store
        self.ttl_seconds = ttl_seconds

    async def has(self, owner: str, repo: str) -> bool:
        return await self.store.exists(context_key(owner, repo))

    async def get(self, owner: str, repo: str) -> Optional[RepoContext]:
        raw = await self.store.get(context_key(owner, repo))
        if not raw:
            return None
        try:
            return RepoContext.from_json(raw)
        except (json.JSONDecodeError, AttributeError) as e:
            logger.warning("[context] Ignoring corrupt cache entry for %s/%s: %s", owner, repo, e)
            return None

    async def set(self, owner: str, repo: str, context: RepoContext) -> None:
        await self.store.setex(context_key(owner, repo), self.ttl_seconds, context.to_json())
        logger.info(
            "[context] Cached context for %s/%s (%d chars, ttl=%ds)",
            owner, repo, len(context.content), self.ttl_seconds,
        )
