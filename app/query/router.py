# FILE: app/query/router.py
"""
Repository question endpoint.

- POST /api/gemini - answer a question about a repository (or one file)
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.query.identity import get_client_identity
from app.query.schemas import QueryRequest
from app.services import Services, get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["query"])


@router.post("/gemini")
async def query_repository(
    payload: QueryRequest,
    request: Request,
    services: Services = Depends(get_services),
) -> JSONResponse:
    """
    Answer ``payload.query`` about ``username/repo``.

    200 with the answer and updated quota, 429 when the daily quota is used
    up, 504 on timeout, 500 otherwise.
    """
    client_id = get_client_identity(request.headers)
    outcome = await services.orchestrator.handle(payload, client_id)
    return JSONResponse(outcome.to_body(), status_code=outcome.status_code)
