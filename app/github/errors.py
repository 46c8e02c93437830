# FILE: app/github/errors.py
"""
Error taxonomy for the GitHub hosting API.

The HTTP client classifies every failed response exactly once into one of
these variants; nothing downstream inspects message text to decide what
happened. Only RateLimitError is retryable.
"""

from typing import Optional


class GitHubError(Exception):
    """Base class for hosting-API failures."""

    retryable = False

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.path = path


class NotFoundError(GitHubError):
    """Repository or path does not exist (or is not visible to the token)."""
    pass


class AuthError(GitHubError):
    """Credential missing, invalid, or rejected."""
    pass


class RateLimitError(GitHubError):
    """Primary or secondary API rate limit hit."""

    retryable = True


class DirectoryMismatchError(GitHubError):
    """A file was requested but the path is a directory."""
    pass


class UnknownError(GitHubError):
    """Anything unclassified. Keeps the original message and the path."""

    def __init__(self, message: str, path: Optional[str] = None):
        if path:
            message = f"{message} (path: {path})"
        super().__init__(message, path)
