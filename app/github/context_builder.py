# FILE: app/github/context_builder.py
"""
Whole-repository context assembly.

Turns the fetcher's FileNode tree into the ``{tree, content}`` blob kept in
the distributed context cache:

  tree     indented directory listing (├── / └──)
  content  text files concatenated with ``FILE: <path>`` separators

Binary files, oversized files and anything past the character budget are
left out. File reads go out in batches of BATCH_SIZE, like directory
expansion.
"""

from __future__ import annotations

import asyncio
import logging
import posixpath
from typing import List, Optional

from app.cache.context_cache import ContextCache, RepoContext
from app.cache.ttl_cache import SingleFlightCache, TTLCache
from app.github.errors import GitHubError
from app.github.fetcher import BATCH_SIZE, CACHE_TTL_SECONDS, SourceTreeFetcher
from app.github.schemas import FileNode, iter_files

logger = logging.getLogger(__name__)

SEPARATOR = "=" * 48

MAX_FILE_BYTES = 100_000
MAX_TOTAL_CHARS = 500_000
MAX_FILES = 300

BINARY_EXTENSIONS = {
    ".png", ".jpg", ".jpeg", ".gif", ".bmp", ".ico", ".webp", ".svg",
    ".pdf", ".zip", ".gz", ".tar", ".tgz", ".bz2", ".xz", ".7z", ".rar",
    ".jar", ".war", ".class", ".so", ".dll", ".dylib", ".exe", ".bin",
    ".o", ".a", ".pyc", ".whl", ".woff", ".woff2", ".ttf", ".otf", ".eot",
    ".mp3", ".mp4", ".wav", ".avi", ".mov", ".mkv", ".ogg", ".flac",
    ".ipynb", ".lock", ".db", ".sqlite", ".parquet", ".pkl", ".npy",
}

SKIPPED_NAMES = {"package-lock.json", "yarn.lock", "pnpm-lock.yaml", "poetry.lock"}


def is_text_file(node: FileNode, max_bytes: int = MAX_FILE_BYTES) -> bool:
    if node.is_directory or node.name in SKIPPED_NAMES:
        return False
    _, ext = posixpath.splitext(node.name.lower())
    if ext in BINARY_EXTENSIONS:
        return False
    return node.size is None or node.size <= max_bytes


def render_tree(nodes: List[FileNode], root_label: str) -> str:
    """Render nodes as an indented tree under ``root_label``."""
    lines = ["Directory structure:", f"└── {root_label}/"]

    def walk(children: List[FileNode], prefix: str) -> None:
        for i, node in enumerate(children):
            last = i == len(children) - 1
            branch = "└── " if last else "├── "
            suffix = "/" if node.is_directory else ""
            lines.append(f"{prefix}{branch}{node.name}{suffix}")
            if node.children:
                walk(node.children, prefix + ("    " if last else "│   "))

    walk(nodes, "    ")
    return "\n".join(lines)


def format_file_block(path: str, text: str) -> str:
    return f"{SEPARATOR}\nFILE: {path}\n{SEPARATOR}\n{text}\n"


class ContextBuilder:
    """Builds RepoContext blobs from the fetcher."""

    def __init__(
        self,
        fetcher: SourceTreeFetcher,
        max_file_bytes: int = MAX_FILE_BYTES,
        max_total_chars: int = MAX_TOTAL_CHARS,
        max_files: int = MAX_FILES,
        batch_size: int = BATCH_SIZE,
        builds: Optional[SingleFlightCache] = None,
    ):
        self.fetcher = fetcher
        self.max_file_bytes = max_file_bytes
        self.max_total_chars = max_total_chars
        self.max_files = max_files
        self.batch_size = batch_size
        # Background population and on-demand builds for one repo share a run
        self.builds = builds or SingleFlightCache(TTLCache(CACHE_TTL_SECONDS), name="context")

    async def _read(self, node: FileNode, owner: str, repo: str) -> Optional[str]:
        try:
            return await self.fetcher.fetch_file_content(node.path, owner, repo)
        except GitHubError as e:
            logger.debug("[context] Skipping %s: %s", node.path, e)
            return None

    async def build(self, owner: str, repo: str) -> RepoContext:
        return await self.builds.get_or_load(f"{owner}/{repo}", lambda: self._build(owner, repo))

    async def _build(self, owner: str, repo: str) -> RepoContext:
        files = await self.fetcher.fetch_directory_contents(owner, repo, "")
        tree = render_tree(files, f"{owner}-{repo}")

        candidates = [n for n in iter_files(files) if is_text_file(n, self.max_file_bytes)]
        candidates = candidates[: self.max_files]

        blocks: List[str] = []
        total = 0
        for start in range(0, len(candidates), self.batch_size):
            if total >= self.max_total_chars:
                break
            batch = candidates[start:start + self.batch_size]
            texts = await asyncio.gather(*(self._read(n, owner, repo) for n in batch))
            for node, text in zip(batch, texts):
                if text is None or total >= self.max_total_chars:
                    continue
                text = text[: self.max_total_chars - total]
                block = format_file_block(node.path, text)
                blocks.append(block)
                total += len(text)

        logger.info(
            "[context] Built context for %s/%s: %d files, %d chars",
            owner, repo, len(blocks), total,
        )
        return RepoContext(tree=tree, content="\n".join(blocks))


async def collect_repo_context(
    builder: ContextBuilder,
    cache: ContextCache,
    owner: str,
    repo: str,
) -> RepoContext:
    """Build the repository context and store it in the distributed tier."""
    context = await builder.build(owner, repo)
    await cache.set(owner, repo, context)
    return context
