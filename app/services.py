# FILE: app/services.py
"""
Process-wide service wiring.

Builds the store, caches, GitHub client/fetcher, rate limiter, Gemini
client and orchestrator once, from Settings. Routers receive them through
the ``get_services`` dependency, which tests override.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from config.settings import Settings, get_settings
from app.cache.context_cache import ContextCache
from app.cache.store import KeyValueStore, create_store
from app.cache.ttl_cache import SingleFlightCache, TTLCache
from app.github.client import GitHubClient
from app.github.context_builder import ContextBuilder
from app.github.fetcher import SourceTreeFetcher
from app.llm.gemini_client import GeminiClient, create_gemini_client
from app.query.background import BackgroundRunner
from app.query.orchestrator import QueryOrchestrator
from app.ratelimit.limiter import RateLimiter

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    store: KeyValueStore
    github: GitHubClient
    fetcher: SourceTreeFetcher
    context_cache: ContextCache
    context_builder: ContextBuilder
    limiter: RateLimiter
    ai_client: GeminiClient
    background: BackgroundRunner
    orchestrator: QueryOrchestrator

    async def aclose(self) -> None:
        await self.background.shutdown()
        await self.github.aclose()
        await self.store.close()


def build_services(settings: Optional[Settings] = None) -> Services:
    settings = settings or get_settings()
    ttl = settings.repo_cache_ttl_seconds

    store = create_store(settings.redis_url)
    github = GitHubClient(settings.github_token, settings.github_api_url)
    fetcher = SourceTreeFetcher(
        github,
        repo_cache=SingleFlightCache(TTLCache(ttl), name="repo"),
        dir_cache=SingleFlightCache(TTLCache(ttl), name="directory"),
    )
    context_cache = ContextCache(store, ttl_seconds=settings.context_cache_ttl_seconds)
    context_builder = ContextBuilder(fetcher, builds=SingleFlightCache(TTLCache(ttl), name="context"))
    limiter = RateLimiter(
        store,
        limit=settings.rate_limit_daily,
        window_seconds=settings.rate_limit_window_seconds,
    )
    ai_client = create_gemini_client(
        settings.gemini_api_key,
        settings.gemini_api_key_secondary,
        settings.gemini_model,
    )
    background = BackgroundRunner()
    orchestrator = QueryOrchestrator(
        limiter=limiter,
        fetcher=fetcher,
        context_cache=context_cache,
        context_builder=context_builder,
        ai_client=ai_client,
        background=background,
        timeout_seconds=settings.query_timeout_seconds,
    )
    logger.info(
        "[services] Ready (model=%s, limit=%d/%ds, secondary_key=%s)",
        settings.gemini_model,
        settings.rate_limit_daily,
        settings.rate_limit_window_seconds,
        "yes" if settings.gemini_api_key_secondary else "no",
    )
    return Services(
        settings=settings,
        store=store,
        github=github,
        fetcher=fetcher,
        context_cache=context_cache,
        context_builder=context_builder,
        limiter=limiter,
        ai_client=ai_client,
        background=background,
        orchestrator=orchestrator,
    )


_services: Optional[Services] = None


def get_services() -> Services:
    """FastAPI dependency returning the shared Services."""
    global _services
    if _services is None:
        _services = build_services()
    return _services


async def shutdown_services() -> None:
    global _services
    if _services is not None:
        await _services.aclose()
        _services = None
