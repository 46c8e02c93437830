# FILE: config/settings.py
"""Runtime settings for the repository Q&A service.

Everything is read from the environment (``.env`` is loaded by ``main.py``
before this module is imported). Values are resolved once per process by
``get_settings()``; tests build their own ``Settings`` directly.

Environment:
  - GITHUB_TOKEN / GITHUB_API_URL: hosting API credential and base URL
  - GEMINI_API_KEY / GEMINI_API_KEY_SECONDARY / GEMINI_MODEL: AI provider slots
  - REDIS_URL: distributed store (unset = in-process store)
  - RATE_LIMIT_DAILY / RATE_LIMIT_WINDOW_SECONDS: per-client quota
  - QUERY_TIMEOUT_SECONDS: hard deadline for AI generation
  - REPO_CACHE_TTL_SECONDS / CONTEXT_CACHE_TTL_SECONDS: cache lifetimes
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

# =============================================================================
# Defaults
# =============================================================================

DEFAULT_GITHUB_API_URL = "https://api.github.com"
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash-lite"
DEFAULT_DAILY_LIMIT = 20
DEFAULT_WINDOW_SECONDS = 24 * 60 * 60
DEFAULT_QUERY_TIMEOUT_SECONDS = 120.0
DEFAULT_REPO_CACHE_TTL_SECONDS = 5 * 60
DEFAULT_CONTEXT_CACHE_TTL_SECONDS = 60 * 60


def _get_key(name: str) -> Optional[str]:
    """Read an API key, tolerating quotes and whitespace copied into .env files."""
    key = os.getenv(name)
    if key:
        key = key.strip().strip('"').strip("'")
    return key if key else None


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    github_token: Optional[str] = None
    github_api_url: str = DEFAULT_GITHUB_API_URL
    gemini_api_key: Optional[str] = None
    gemini_api_key_secondary: Optional[str] = None
    gemini_model: str = DEFAULT_GEMINI_MODEL
    redis_url: Optional[str] = None
    rate_limit_daily: int = DEFAULT_DAILY_LIMIT
    rate_limit_window_seconds: int = DEFAULT_WINDOW_SECONDS
    query_timeout_seconds: float = DEFAULT_QUERY_TIMEOUT_SECONDS
    repo_cache_ttl_seconds: float = DEFAULT_REPO_CACHE_TTL_SECONDS
    context_cache_ttl_seconds: int = DEFAULT_CONTEXT_CACHE_TTL_SECONDS
    log_level: str = "INFO"


def load_settings() -> Settings:
    """Build settings from the current environment."""
    return Settings(
        github_token=_get_key("GITHUB_TOKEN"),
        github_api_url=os.getenv("GITHUB_API_URL", DEFAULT_GITHUB_API_URL).rstrip("/"),
        gemini_api_key=_get_key("GEMINI_API_KEY"),
        gemini_api_key_secondary=_get_key("GEMINI_API_KEY_SECONDARY"),
        gemini_model=os.getenv("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
        redis_url=os.getenv("REDIS_URL") or None,
        rate_limit_daily=_get_int("RATE_LIMIT_DAILY", DEFAULT_DAILY_LIMIT),
        rate_limit_window_seconds=_get_int("RATE_LIMIT_WINDOW_SECONDS", DEFAULT_WINDOW_SECONDS),
        query_timeout_seconds=_get_float("QUERY_TIMEOUT_SECONDS", DEFAULT_QUERY_TIMEOUT_SECONDS),
        repo_cache_ttl_seconds=_get_float("REPO_CACHE_TTL_SECONDS", DEFAULT_REPO_CACHE_TTL_SECONDS),
        context_cache_ttl_seconds=_get_int("CONTEXT_CACHE_TTL_SECONDS", DEFAULT_CONTEXT_CACHE_TTL_SECONDS),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings (used after the environment changes)."""
    global _settings
    _settings = None
