"""API v1 router that aggregates all endpoint routers."""

from fastapi import APIRouter

from confirmation_service.api.v1 import (
    confirmations,
    health,
    sync,
)

api_router = APIRouter()

# Include all routers
api_router.include_router(
    health.router,
    tags=["Health"],
)

api_router.include_router(
    sync.router,
    prefix="/sync",
    tags=["Sync"],
)

api_router.include_router(
    confirmations.router,
    prefix="/confirmations",
    tags=["Confirmations"],
)
