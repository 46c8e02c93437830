# FILE: app/ratelimit/router.py
"""
Quota endpoint.

- GET /api/rate-limit - remaining AI requests for the calling client
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.query.identity import get_client_identity
from app.services import Services, get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["rate-limit"])


@router.get("/rate-limit")
async def get_rate_limit(
    request: Request,
    services: Services = Depends(get_services),
) -> JSONResponse:
    """Current quota for the caller. Read-only, never charges a request."""
    try:
        client_id = get_client_identity(request.headers)
        info = await services.limiter.check(client_id)
    except Exception as e:
        logger.error("[ratelimit] Error checking rate limit: %s", e)
        return JSONResponse({"success": False, "error": "Failed to check rate limit"}, status_code=500)

    return JSONResponse({"success": True, **info.to_dict()})
