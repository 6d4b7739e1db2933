"""Confirmation sync trigger endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from confirmation_service.config import Settings, get_settings
from confirmation_service.infrastructure.redis import CacheService, get_cache
from confirmation_service.services.confirmation_sync import execute_confirmation_sync
from shared.constants import CORS_HEADERS, SYNC_TRIGGER_METHODS

router = APIRouter()


class LastSyncRunResponse(BaseModel):
    """Summary of the most recent completed sync run."""

    started_at: str
    finished_at: str
    summary: dict[str, int]


@router.get("/confirmations/last-run", response_model=LastSyncRunResponse)
async def get_last_sync_run(
    cache: CacheService = Depends(get_cache),
) -> Any:
    """Return the summary of the last completed sync run, if still cached."""
    last_run = await cache.get_last_sync_run()
    if last_run is None:
        raise HTTPException(status_code=404, detail="No sync run recorded")
    return last_run


@router.api_route(
    "/confirmations",
    methods=SYNC_TRIGGER_METHODS,
)
async def sync_confirmations(
    request: Request,
    settings: Settings = Depends(get_settings),
    cache: CacheService = Depends(get_cache),
) -> Response:
    """
    Trigger one confirmation sync pass.

    `OPTIONS` answers CORS preflight with an empty 200. Any other method runs
    the sync to completion; no request body is required.

    **Responses:**
    - `200`: `{success, message, summary: {batches, total_processed, successful, errors}, results}`
    - `500`: `{success: false, error, details}` when the run could not complete
    """
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=CORS_HEADERS)

    status_code, body = await execute_confirmation_sync(settings, cache=cache)
    return JSONResponse(status_code=status_code, content=body, headers=CORS_HEADERS)
