# FILE: app/github/router.py
"""
Repository browsing endpoints.

- GET  /api/repo/{owner}/{repo}   - metadata + depth-capped file tree
- GET  /api/file-content          - decoded text of one file
- POST /api/collect-repo-data     - build and cache the whole-repo context
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from app.cache.store import StoreError
from app.github.context_builder import collect_repo_context
from app.github.errors import (
    AuthError,
    DirectoryMismatchError,
    GitHubError,
    NotFoundError,
    RateLimitError,
)
from app.services import Services, get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["repository"])


class CollectRepoRequest(BaseModel):
    username: str = Field(..., min_length=1)
    repo: str = Field(..., min_length=1)


def github_error_status(error: GitHubError) -> int:
    if isinstance(error, AuthError):
        return 401
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, RateLimitError):
        return 429
    if isinstance(error, DirectoryMismatchError):
        return 400
    return 500


def _error_response(error: GitHubError) -> JSONResponse:
    return JSONResponse({"success": False, "error": error.message}, status_code=github_error_status(error))


@router.get("/repo/{owner}/{repo}")
async def get_repository(
    owner: str,
    repo: str,
    services: Services = Depends(get_services),
) -> JSONResponse:
    try:
        summary = await services.fetcher.fetch_repo_data(owner, repo)
    except GitHubError as e:
        return _error_response(e)
    return JSONResponse({"success": True, "repo": summary.to_dict()})


@router.get("/file-content")
async def get_file_content(
    path: str = Query(..., min_length=1),
    username: str = Query(..., min_length=1),
    repo: str = Query(..., min_length=1),
    services: Services = Depends(get_services),
) -> JSONResponse:
    try:
        content = await services.fetcher.fetch_file_content(path, username, repo)
    except GitHubError as e:
        return _error_response(e)
    return JSONResponse({"success": True, "path": path, "content": content})


@router.post("/collect-repo-data")
async def collect_repo_data(
    payload: CollectRepoRequest,
    services: Services = Depends(get_services),
) -> JSONResponse:
    """Build the repository context and store it for later questions."""
    try:
        context = await collect_repo_context(
            services.context_builder, services.context_cache, payload.username, payload.repo
        )
    except GitHubError as e:
        return _error_response(e)
    except StoreError as e:
        logger.error("[context] Could not store context for %s/%s: %s", payload.username, payload.repo, e)
        return JSONResponse({"success": False, "error": "Failed to store repository data"}, status_code=500)

    return JSONResponse({
        "success": True,
        "files": len(context.tree.split("\n")),
        "totalChars": len(context.content),
    })
