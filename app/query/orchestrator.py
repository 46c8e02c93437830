# FILE: app/query/orchestrator.py
"""
Query pipeline for repository questions.

Per request:
  1. arm the deadline (QUERY_TIMEOUT_SECONDS)
  2. gate on RateLimiter.check; denied -> 429, nothing else runs
  3. assemble context
       single file  -> that file only, no traversal, no context cache read
       whole repo   -> if the context cache lacks this repo, submit a
                       background population task (not awaited); then
                       cached blob -> on-demand build -> generic prompt
  4. generate_with_fallback under the remaining deadline
  5. success -> RateLimiter.increment, 200
  6. failure -> 504 (deadline) / 500 (anything else); quota not charged

Context tiers degrade into each other; only quota denial, the deadline and
generation failure end the request early. The deadline covers context
assembly and generation together. A context build still running at the
deadline is left to finish in the background runner and its result is
dropped.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional, Tuple

from app.cache.context_cache import ContextCache, RepoContext
from app.github.context_builder import ContextBuilder, collect_repo_context
from app.github.fetcher import SourceTreeFetcher
from app.llm.gemini_client import GeminiClient
from app.llm.prompts import build_file_prompt, build_generic_prompt, build_repo_prompt
from app.query.background import BackgroundRunner
from app.query.schemas import ContextStats, PromptContext, QueryOutcome, QueryRequest
from app.ratelimit.limiter import RateLimiter, RateLimitInfo

logger = logging.getLogger(__name__)

QUERY_TIMEOUT_SECONDS = 120.0
TREE_LOG_LINES = 20

TIMEOUT_MESSAGE = "Request timed out. Please try with a smaller repository or specific file query."


def format_reset_time(reset_at: int) -> str:
    return datetime.fromtimestamp(reset_at, tz=timezone.utc).strftime("%H:%M:%S UTC")


def quota_exceeded_message(info: RateLimitInfo) -> str:
    return f"Daily limit of {info.limit} AI requests reached. Resets at {format_reset_time(info.reset_at)}."


class QueryOrchestrator:
    """Runs the request pipeline. One instance per process."""

    def __init__(
        self,
        limiter: RateLimiter,
        fetcher: SourceTreeFetcher,
        context_cache: ContextCache,
        context_builder: ContextBuilder,
        ai_client: GeminiClient,
        background: Optional[BackgroundRunner] = None,
        timeout_seconds: float = QUERY_TIMEOUT_SECONDS,
    ):
        self.limiter = limiter
        self.fetcher = fetcher
        self.context_cache = context_cache
        self.context_builder = context_builder
        self.ai_client = ai_client
        self.background = background or BackgroundRunner()
        self.timeout_seconds = timeout_seconds

    async def handle(self, request: QueryRequest, client_id: str) -> QueryOutcome:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout_seconds

        quota = await self.limiter.check(client_id)
        if not quota.allowed:
            logger.warning("[query] Rate limit exceeded for client: %s", client_id)
            return QueryOutcome(
                success=False,
                status_code=429,
                error=quota_exceeded_message(quota),
                rate_limited=True,
                rate_limit=quota,
            )

        logger.info("[query] Starting query processing for repository: %s", request.repo_key)

        try:
            prompt, context = await self._assemble_within(request, deadline - loop.time())
            logger.info(
                "[context] Context stats: %d files, %d chars",
                context.stats.files, context.stats.total_chars,
            )

            remaining = deadline - loop.time()
            if remaining <= 0:
                raise asyncio.TimeoutError()
            response = await asyncio.wait_for(self.ai_client.generate_with_fallback(prompt), timeout=remaining)
        except asyncio.TimeoutError:
            logger.error("[query] Timed out processing request for %s", request.repo_key)
            return QueryOutcome(success=False, status_code=504, error=TIMEOUT_MESSAGE)
        except Exception as e:
            logger.error("[query] Error processing request for %s: %s", request.repo_key, e)
            return QueryOutcome(success=False, status_code=500, error=f"Failed to process request: {e}")

        rate_limit = await self.limiter.increment(client_id)
        return QueryOutcome(success=True, response=response, rate_limit=rate_limit)

    # -------------------------------------------------------------------------
    # Context assembly
    # -------------------------------------------------------------------------

    async def _assemble_within(self, request: QueryRequest, remaining: float) -> Tuple[str, PromptContext]:
        """
        build_prompt bounded by ``remaining`` seconds.

        On timeout the build is not cancelled: it is handed to the background
        runner, finishes there (warming the caches) and its result is dropped.
        """
        build = asyncio.ensure_future(self.build_prompt(request))
        try:
            return await asyncio.wait_for(asyncio.shield(build), timeout=max(remaining, 0))
        except asyncio.TimeoutError:
            logger.warning("[context] Context assembly for %s exceeded the deadline", request.repo_key)
            self.background.track(f"context:{request.repo_key}:{id(build)}", build)
            raise

    async def build_prompt(self, request: QueryRequest) -> Tuple[str, PromptContext]:
        if request.single_file:
            return await self._file_prompt(request)
        return await self._repo_prompt(request)

    async def _file_prompt(self, request: QueryRequest) -> Tuple[str, PromptContext]:
        content = await self.fetcher.fetch_file_content(request.file_path, request.username, request.repo)
        prompt = build_file_prompt(request.query, request.file_path, content)
        context = PromptContext(
            tree=request.file_path,
            content=content,
            stats=ContextStats(files=1, total_chars=len(content)),
        )
        return prompt, context

    def _schedule_population(self, owner: str, repo: str) -> None:
        self.background.submit(
            f"populate:{owner}/{repo}",
            lambda: collect_repo_context(self.context_builder, self.context_cache, owner, repo),
        )

    async def _repo_prompt(self, request: QueryRequest) -> Tuple[str, PromptContext]:
        owner, repo = request.username, request.repo
        history = [m.model_dump() for m in request.history]

        try:
            if not await self.context_cache.has(owner, repo):
                self._schedule_population(owner, repo)
        except Exception as e:
            logger.error("[context] Context cache check failed for %s: %s", request.repo_key, e)

        repo_context: Optional[RepoContext] = None
        try:
            repo_context = await self.context_cache.get(owner, repo)
        except Exception as e:
            logger.error("[context] Cache retrieval failed for %s: %s", request.repo_key, e)

        if repo_context is not None:
            tree_lines = repo_context.tree.split("\n")
            logger.info("[context] Using cached data for %s (%d tree lines)", request.repo_key, len(tree_lines))
            preview = "\n".join(tree_lines[:TREE_LOG_LINES])
            if len(tree_lines) > TREE_LOG_LINES:
                preview += "\n... (truncated)"
            logger.debug("[context] Cached tree:\n%s", preview)
        else:
            try:
                repo_context = await self.context_builder.build(owner, repo)
                logger.info("[context] Built context on demand for %s", request.repo_key)
            except Exception as e:
                logger.warning("[context] Repository data not available for %s: %s", request.repo_key, e)

        if repo_context is None:
            logger.warning("[context] Using generic prompt for %s", request.repo_key)
            return build_generic_prompt(request.query, request.repo_key), PromptContext(tree="", content="")

        prompt = build_repo_prompt(request.query, history, repo_context.tree, repo_context.content)
        context = PromptContext(
            tree=repo_context.tree,
            content=repo_context.content,
            stats=ContextStats(
                files=len(repo_context.tree.split("\n")),
                total_chars=len(repo_context.content),
            ),
        )
        return prompt, context
