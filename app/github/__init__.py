# FILE: app/github/__init__.py
"""
GitHub hosting-API access: client, tagged errors, tree/content fetcher and
whole-repository context builder.
"""

from .errors import (
    GitHubError,
    NotFoundError,
    AuthError,
    RateLimitError,
    DirectoryMismatchError,
    UnknownError,
)
from .schemas import FileNode, RepoSummary, iter_files
from .client import GitHubClient
from .fetcher import SourceTreeFetcher, retry_with_backoff
from .context_builder import ContextBuilder, collect_repo_context, render_tree

__all__ = [
    "GitHubError",
    "NotFoundError",
    "AuthError",
    "RateLimitError",
    "DirectoryMismatchError",
    "UnknownError",
    "FileNode",
    "RepoSummary",
    "iter_files",
    "GitHubClient",
    "SourceTreeFetcher",
    "retry_with_backoff",
    "ContextBuilder",
    "collect_repo_context",
    "render_tree",
]
