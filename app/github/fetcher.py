# FILE: app/github/fetcher.py
"""
Source tree fetcher.

Recursive, depth- and concurrency-bounded retrieval of a repository's file
tree and file contents.

- fetch_repo_data: metadata + tree, cached per ``owner/name``
- fetch_directory_contents: one listing per path, cached per
  ``owner/repo/path``; child directories expanded in batches of
  BATCH_SIZE, never below MAX_DEPTH
- fetch_file_content: single file, base64-decoded

Every upstream call goes through retry_with_backoff, which retries
RateLimitError only. fetch_repo_data retries the metadata call alone; the
tree under it is retried per listing by fetch_directory_contents.
Both caches are single-flight: concurrent callers share one upstream call
and a failed call stays cached until its TTL runs out.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

from app.cache.ttl_cache import SingleFlightCache, TTLCache
from app.github.client import GitHubClient
from app.github.errors import (
    AuthError,
    DirectoryMismatchError,
    GitHubError,
    NotFoundError,
    RateLimitError,
    UnknownError,
)
from app.github.schemas import FileNode, RepoSummary

logger = logging.getLogger(__name__)

T = TypeVar("T")

# =============================================================================
# CONSTANTS
# =============================================================================

CACHE_TTL_SECONDS = 5 * 60
MAX_RETRIES = 3
INITIAL_RETRY_DELAY = 1.0
MAX_DEPTH = 2
BATCH_SIZE = 5


# =============================================================================
# RETRY
# =============================================================================

async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    retries: int = MAX_RETRIES,
    initial_delay: float = INITIAL_RETRY_DELAY,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """
    Run ``operation`` up to ``retries`` times.

    Only retryable GitHubErrors (rate limits) are retried, waiting
    initial_delay, 2*initial_delay, ... between attempts. Any other error is
    raised immediately.
    """
    for attempt in range(1, retries + 1):
        try:
            return await operation()
        except GitHubError as e:
            if attempt == retries or not e.retryable:
                raise
            delay = initial_delay * (2 ** (attempt - 1))
            logger.info("[github] Rate limit hit, retrying in %.1fs (attempt %d/%d)", delay, attempt, retries)
            await sleep(delay)
    raise UnknownError("Max retries exceeded")


# =============================================================================
# FETCHER
# =============================================================================

class SourceTreeFetcher:
    """Repository tree/content fetcher with per-key single-flight caches."""

    def __init__(
        self,
        client: GitHubClient,
        repo_cache: Optional[SingleFlightCache] = None,
        dir_cache: Optional[SingleFlightCache] = None,
        max_depth: int = MAX_DEPTH,
        batch_size: int = BATCH_SIZE,
        max_retries: int = MAX_RETRIES,
        initial_retry_delay: float = INITIAL_RETRY_DELAY,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.client = client
        self.repo_cache = repo_cache or SingleFlightCache(TTLCache(CACHE_TTL_SECONDS), name="repo")
        self.dir_cache = dir_cache or SingleFlightCache(TTLCache(CACHE_TTL_SECONDS), name="directory")
        self.max_depth = max_depth
        self.batch_size = batch_size
        self.max_retries = max_retries
        self.initial_retry_delay = initial_retry_delay
        self._sleep = sleep

    async def _retry(self, operation: Callable[[], Awaitable[T]]) -> T:
        return await retry_with_backoff(
            operation,
            retries=self.max_retries,
            initial_delay=self.initial_retry_delay,
            sleep=self._sleep,
        )

    # -------------------------------------------------------------------------
    # Repository
    # -------------------------------------------------------------------------

    async def fetch_repo_data(self, owner: str, name: str) -> RepoSummary:
        """Repository metadata plus file tree. Validates the token first."""
        await self.client.validate_token()

        key = f"{owner}/{name}"
        return await self.repo_cache.get_or_load(key, lambda: self._load_repo(owner, name))

    async def _load_repo(self, owner: str, name: str) -> RepoSummary:
        try:
            data = await self._retry(lambda: self.client.get_repo(owner, name))
            files = await self.fetch_directory_contents(owner, name, "")
        except NotFoundError as e:
            raise NotFoundError(
                f"Repository {owner}/{name} not found. "
                "Please check if the repository exists and is accessible.",
                e.path,
            ) from e
        except (AuthError, RateLimitError):
            raise
        except GitHubError as e:
            logger.error("[github] Error fetching repo data for %s/%s: %s", owner, name, e)
            raise UnknownError(f"Failed to fetch repository data: {e.message}") from e

        return RepoSummary(
            name=data.get("name", name),
            owner=(data.get("owner") or {}).get("login", owner),
            description=data.get("description"),
            stars=data.get("stargazers_count", 0),
            forks=data.get("forks_count", 0),
            language=data.get("language"),
            files=files,
        )

    # -------------------------------------------------------------------------
    # Directories
    # -------------------------------------------------------------------------

    async def fetch_directory_contents(
        self,
        owner: str,
        repo: str,
        path: str = "",
        depth: int = 0,
    ) -> List[FileNode]:
        """
        Listing of ``path`` with child directories expanded while
        ``depth < max_depth``. Deeper directories are returned without
        children and cost no network call.
        """
        key = f"{owner}/{repo}/{path}"
        return await self.dir_cache.get_or_load(
            key, lambda: self._retry(lambda: self._load_directory(owner, repo, path, depth))
        )

    async def _load_directory(self, owner: str, repo: str, path: str, depth: int) -> List[FileNode]:
        contents = await self.client.get_contents(owner, repo, path)

        if not isinstance(contents, list):
            raise UnknownError("Expected directory contents", path or "/")

        nodes: List[FileNode] = []
        to_expand: List[str] = []
        for item in contents:
            node = FileNode.from_listing(item)
            nodes.append(node)
            if node.is_directory and depth < self.max_depth:
                to_expand.append(node.path)

        # Expand child directories batch by batch, then slot each result
        # into the next directory node in listing order.
        dir_index = 0
        for start in range(0, len(to_expand), self.batch_size):
            batch = to_expand[start:start + self.batch_size]
            results = await asyncio.gather(
                *(self.fetch_directory_contents(owner, repo, child, depth + 1) for child in batch)
            )
            for children in results:
                while dir_index < len(nodes) and not nodes[dir_index].is_directory:
                    dir_index += 1
                if dir_index < len(nodes):
                    nodes[dir_index].children = children
                    dir_index += 1

        return nodes

    # -------------------------------------------------------------------------
    # Files
    # -------------------------------------------------------------------------

    async def fetch_file_content(self, path: str, owner: str, repo: str) -> str:
        """Decoded text of a single file."""
        await self.client.validate_token()
        try:
            return await self._retry(lambda: self._load_file(owner, repo, path))
        except GitHubError as e:
            logger.error("[github] Error fetching file content for %s: %s", path, e)
            raise

    async def _load_file(self, owner: str, repo: str, path: str) -> str:
        data = await self.client.get_contents(owner, repo, path)

        if isinstance(data, list):
            raise DirectoryMismatchError("Requested path is a directory, not a file", path)

        if not isinstance(data, dict) or data.get("type") != "file" or "content" not in data:
            raise UnknownError("Invalid file data received from GitHub API", path)

        encoding = data.get("encoding", "base64")
        if encoding != "base64":
            raise UnknownError(f"Unsupported content encoding: {encoding}", path)

        try:
            raw = base64.b64decode(data["content"])
        except (ValueError, TypeError) as e:
            raise UnknownError(f"Could not decode file content: {e}", path) from e
        return raw.decode("utf-8", errors="replace")
