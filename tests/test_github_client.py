# FILE: tests/test_github_client.py
"""
Tests for app/github/client.py
Response classification into tagged errors and token validation.
"""

import sys
from pathlib import Path

_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import httpx
import pytest

from app.github.client import classify_response, looks_like_html
from app.github.errors import (
    AuthError,
    NotFoundError,
    RateLimitError,
    UnknownError,
)


def _response(status, **kwargs):
    request = httpx.Request("GET", "https://api.github.test/repos/o/r/contents/x")
    return httpx.Response(status, request=request, **kwargs)


class TestClassifyResponse:
    """One tagged error per failure shape."""

    def test_ok_json_is_usable(self):
        assert classify_response(_response(200, json={"name": "x"})) is None

    def test_html_body_is_auth_error_even_on_200(self):
        resp = _response(200, text="<!DOCTYPE html><html><body>Sign in</body></html>")
        assert isinstance(classify_response(resp, "x"), AuthError)

    def test_html_body_with_leading_whitespace(self):
        resp = _response(502, text="\n  <html><body>Bad gateway</body></html>")
        assert isinstance(classify_response(resp), AuthError)

    def test_401(self):
        resp = _response(401, json={"message": "Bad credentials"})
        assert isinstance(classify_response(resp), AuthError)

    def test_403_with_exhausted_quota_is_rate_limit(self):
        resp = _response(403, headers={"x-ratelimit-remaining": "0"}, json={"message": "API rate limit exceeded"})
        error = classify_response(resp, "x")
        assert isinstance(error, RateLimitError)
        assert error.retryable is True

    def test_secondary_rate_limit_with_retry_after(self):
        resp = _response(403, headers={"retry-after": "60"}, json={"message": "You have exceeded a secondary rate limit"})
        assert isinstance(classify_response(resp), RateLimitError)

    def test_429(self):
        assert isinstance(classify_response(_response(429, json={"message": "slow down"})), RateLimitError)

    def test_plain_403_is_auth_error(self):
        resp = _response(403, headers={"x-ratelimit-remaining": "4000"}, json={"message": "Resource not accessible"})
        error = classify_response(resp)
        assert isinstance(error, AuthError)
        assert error.retryable is False

    def test_404(self):
        error = classify_response(_response(404, json={"message": "Not Found"}), "docs")
        assert isinstance(error, NotFoundError)
        assert error.path == "docs"

    def test_500_is_unknown_with_path(self):
        error = classify_response(_response(500, json={"message": "Server Error"}), "src/app.py")
        assert isinstance(error, UnknownError)
        assert "Server Error" in str(error)
        assert "src/app.py" in str(error)

    def test_looks_like_html(self):
        assert looks_like_html("<!doctype html>")
        assert not looks_like_html('{"message": "<html>"}')


class TestGitHubClient:
    """Token handling and transport errors."""

    @pytest.mark.asyncio
    async def test_missing_token_fails_without_network(self, fake_github):
        client = fake_github.client(token=None)
        with pytest.raises(AuthError, match="not configured"):
            await client.get_repo("octo", "demo")
        assert fake_github.calls == []

    @pytest.mark.asyncio
    async def test_invalid_token(self, fake_github):
        fake_github.token_valid = False
        client = fake_github.client()
        with pytest.raises(AuthError, match="Invalid GitHub token"):
            await client.validate_token()

    @pytest.mark.asyncio
    async def test_successful_validation_is_reused(self, fake_github):
        client = fake_github.client()
        await client.validate_token()
        await client.validate_token()
        assert fake_github.count("/user") == 1

    @pytest.mark.asyncio
    async def test_rate_limited_validation_stays_retryable(self, fake_github, rate_limited):
        fake_github.queue("/user", rate_limited())
        client = fake_github.client()
        with pytest.raises(RateLimitError):
            await client.validate_token()

    @pytest.mark.asyncio
    async def test_transport_error_is_unknown(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        from app.github.client import GitHubClient
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="https://api.github.test")
        client = GitHubClient("t", "https://api.github.test", http=http)
        with pytest.raises(UnknownError, match="connection refused"):
            await client.get_contents("octo", "demo", "src")
