# FILE: app/github/client.py
"""
Thin async client for the GitHub REST API.

Responsibilities:
- attach the token and API headers
- validate the token (GET /user) before data calls
- turn every failed response into a tagged GitHubError

Classification order for a response:
  1. HTML body (sniffed, regardless of status) -> AuthError
  2. 401                                       -> AuthError
  3. 403/429 with exhausted quota or Retry-After -> RateLimitError
  4. 403                                       -> AuthError
  5. 404                                       -> NotFoundError
  6. other >= 400 / non-JSON body              -> UnknownError
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Optional
from urllib.parse import quote

import httpx

from app.github.errors import (
    AuthError,
    GitHubError,
    NotFoundError,
    RateLimitError,
    UnknownError,
)

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_TIMEOUT_SECONDS = 30.0
# How long a successful token check is trusted
TOKEN_CHECK_TTL_SECONDS = 5 * 60

HTML_RESPONSE_MESSAGE = (
    "GitHub API returned HTML response. "
    "This usually indicates an authentication or rate limit issue."
)


def looks_like_html(body: str) -> bool:
    head = body.lstrip()[:64].lower()
    return head.startswith("<!doctype") or head.startswith("<html")


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return response.reason_phrase


def _is_rate_limited(response: httpx.Response, message: str) -> bool:
    if response.status_code not in (403, 429):
        return False
    if response.headers.get("x-ratelimit-remaining") == "0":
        return True
    if "retry-after" in response.headers:
        return True
    return response.status_code == 429 or "rate limit" in message.lower()


def classify_response(response: httpx.Response, path: Optional[str] = None) -> Optional[GitHubError]:
    """Return the tagged error for a response, or None if it is usable."""
    if looks_like_html(response.text):
        return AuthError(HTML_RESPONSE_MESSAGE, path)

    if response.status_code < 400:
        return None

    message = _error_message(response)
    status = response.status_code

    if status == 401:
        return AuthError("GitHub API authentication failed. Please check your GitHub token.", path)
    if _is_rate_limited(response, message):
        return RateLimitError("GitHub API rate limit exceeded. Please try again later.", path)
    if status == 403:
        return AuthError(f"GitHub API access forbidden: {message}", path)
    if status == 404:
        return NotFoundError(f"Not Found: {path or response.request.url.path}", path)
    return UnknownError(f"GitHub API error {status}: {message}", path)


class GitHubClient:
    """Async GitHub REST client. Share one instance per process."""

    def __init__(
        self,
        token: Optional[str],
        base_url: str = DEFAULT_API_URL,
        http: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.token = token
        self.base_url = base_url.rstrip("/")
        self._http = http
        self._owns_http = http is None
        self._timeout = timeout
        self._clock = clock
        self._token_valid_until = 0.0

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(base_url=self.base_url, timeout=self._timeout)
        return self._http

    def _headers(self) -> Dict[str, str]:
        return {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self.token}",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    async def _get(self, url: str, path: Optional[str] = None) -> Any:
        if not self.token:
            raise AuthError(
                "GitHub token is not configured. Please set GITHUB_TOKEN in your environment variables.",
                path,
            )
        try:
            response = await self.http.get(url, headers=self._headers())
        except httpx.HTTPError as e:
            raise UnknownError(f"GitHub request failed: {e}", path) from e

        error = classify_response(response, path)
        if error is not None:
            logger.debug("[github] %s -> %s: %s", url, type(error).__name__, error)
            raise error

        try:
            return response.json()
        except ValueError as e:
            raise UnknownError("Invalid API response format", path) from e

    async def validate_token(self) -> None:
        """Raise AuthError unless the token is accepted by GET /user."""
        if self._clock() < self._token_valid_until:
            return
        try:
            await self._get("/user")
        except AuthError as e:
            if not self.token:
                raise
            raise AuthError(
                "Invalid GitHub token. Please check your token and ensure it has the necessary permissions."
            ) from e
        except RateLimitError:
            raise
        except GitHubError as e:
            raise AuthError(f"GitHub token validation failed: {e}") from e
        self._token_valid_until = self._clock() + TOKEN_CHECK_TTL_SECONDS

    async def get_repo(self, owner: str, repo: str) -> Dict[str, Any]:
        return await self._get(f"/repos/{quote(owner)}/{quote(repo)}", f"{owner}/{repo}")

    async def get_contents(self, owner: str, repo: str, path: str = "") -> Any:
        """Directory listing (list) or file object (dict) for ``path``."""
        url = f"/repos/{quote(owner)}/{quote(repo)}/contents"
        if path:
            url = f"{url}/{quote(path.strip('/'))}"
        return await self._get(url, path or "/")

    async def aclose(self) -> None:
        if self._http is not None and self._owns_http:
            await self._http.aclose()
            self._http = None
