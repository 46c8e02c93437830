# FILE: tests/conftest.py
"""
Pytest configuration for the repository Q&A test suite.

Configures:
- pytest-asyncio for async test support
- project root on sys.path
- shared fakes: controllable clock, in-memory / failing stores, an
  in-memory GitHub REST API served through httpx.MockTransport, and
  scripted text providers
"""
import asyncio
import base64
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock

_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import httpx
import pytest

from app.cache.store import MemoryStore, StoreError
from app.github.client import GitHubClient
from app.github.fetcher import SourceTreeFetcher

pytest_plugins = ["pytest_asyncio"]

API_URL = "https://api.github.test"


# =============================================================================
# Clock
# =============================================================================

class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# =============================================================================
# Stores
# =============================================================================

class FailingStore:
    """Store whose backend is down."""

    def __init__(self):
        self.calls = 0

    async def _fail(self, *args, **kwargs):
        self.calls += 1
        raise StoreError("connection refused")

    get = _fail
    set = _fail
    setex = _fail
    exists = _fail

    async def close(self):
        pass


# =============================================================================
# GitHub
# =============================================================================

def _b64(text: str) -> str:
    # GitHub wraps base64 content at 60 chars
    encoded = base64.b64encode(text.encode("utf-8")).decode("ascii")
    return "\n".join(encoded[i:i + 60] for i in range(0, len(encoded), 60)) + "\n"


class FakeGitHub:
    """
    In-memory GitHub REST API.

    add_tree() takes a nested dict: dict values are directories, str values
    are file contents. Every request path is recorded in ``calls``.
    ``queue(path, *responses)`` makes the next requests for ``path`` return
    the given responses before falling back to the stored data.
    """

    def __init__(self, delay: float = 0.0):
        self.repos: Dict[str, Dict[str, Any]] = {}
        self.contents: Dict[str, Any] = {}
        self.calls: List[str] = []
        self.overrides: Dict[str, List[httpx.Response]] = {}
        self.token_valid = True
        self.delay = delay
        self.active = 0
        self.max_active = 0

    def add_repo(self, owner: str, repo: str, **meta: Any) -> None:
        data = {
            "name": repo,
            "owner": {"login": owner},
            "description": None,
            "stargazers_count": 0,
            "forks_count": 0,
            "language": None,
        }
        data.update(meta)
        self.repos[f"{owner}/{repo}"] = data

    def add_tree(self, owner: str, repo: str, tree: Dict[str, Any], prefix: str = "") -> None:
        listing = []
        for name, value in tree.items():
            path = f"{prefix}/{name}" if prefix else name
            if isinstance(value, dict):
                listing.append({"name": name, "path": path, "type": "dir", "size": 0})
                self.add_tree(owner, repo, value, path)
            else:
                listing.append({"name": name, "path": path, "type": "file", "size": len(value)})
                self.contents[f"{owner}/{repo}/{path}"] = {
                    "type": "file",
                    "name": name,
                    "path": path,
                    "size": len(value),
                    "encoding": "base64",
                    "content": _b64(value),
                }
        self.contents[f"{owner}/{repo}/{prefix}"] = listing

    def queue(self, path: str, *responses: httpx.Response) -> None:
        self.overrides.setdefault(path, []).extend(responses)

    def count(self, path: str) -> int:
        return self.calls.count(path)

    def data_calls(self) -> List[str]:
        return [c for c in self.calls if c != "/user"]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls.append(path)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            return self._respond(path)
        finally:
            self.active -= 1

    def _respond(self, path: str) -> httpx.Response:
        queued = self.overrides.get(path)
        if queued:
            return queued.pop(0)

        if path == "/user":
            if self.token_valid:
                return httpx.Response(200, json={"login": "tester"})
            return httpx.Response(401, json={"message": "Bad credentials"})

        if path.startswith("/repos/"):
            parts = path[len("/repos/"):].split("/", 2)
            if len(parts) == 2:
                meta = self.repos.get(f"{parts[0]}/{parts[1]}")
                if meta is not None:
                    return httpx.Response(200, json=meta)
            elif len(parts) == 3 and parts[2].startswith("contents"):
                sub = parts[2][len("contents"):].strip("/")
                key = f"{parts[0]}/{parts[1]}/{sub}"
                if key in self.contents:
                    return httpx.Response(200, json=self.contents[key])

        return httpx.Response(404, json={"message": "Not Found"})

    def client(self, token: Optional[str] = "test-token") -> GitHubClient:
        http = httpx.AsyncClient(transport=httpx.MockTransport(self.handler), base_url=API_URL)
        return GitHubClient(token, API_URL, http=http)


def rate_limited_response() -> httpx.Response:
    return httpx.Response(
        403,
        headers={"x-ratelimit-remaining": "0"},
        json={"message": "API rate limit exceeded"},
    )


# =============================================================================
# Text providers
# =============================================================================

class ScriptedProvider:
    """Text provider returning a fixed answer, raising, or sleeping first."""

    def __init__(self, name: str, answer: str = "answer", error: Optional[Exception] = None, delay: float = 0.0):
        self.name = name
        self.answer = answer
        self.error = error
        self.delay = delay
        self.prompts: List[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.answer


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_store(clock):
    return MemoryStore(clock=clock)


@pytest.fixture
def failing_store():
    return FailingStore()


@pytest.fixture
def fake_github():
    return FakeGitHub()


@pytest.fixture
def no_sleep():
    """Replacement for asyncio.sleep in retry loops; records requested delays."""
    return AsyncMock(return_value=None)


@pytest.fixture
def fetcher(fake_github, no_sleep):
    return SourceTreeFetcher(fake_github.client(), sleep=no_sleep)


@pytest.fixture
def make_provider():
    return ScriptedProvider


@pytest.fixture
def rate_limited():
    return rate_limited_response
