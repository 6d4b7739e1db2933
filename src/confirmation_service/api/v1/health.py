"""Health check endpoints."""

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from confirmation_service import __version__
from confirmation_service.config import Settings, get_settings
from confirmation_service.infrastructure.database.connection import check_database
from confirmation_service.infrastructure.redis import CacheService, get_cache

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    environment: str
    timestamp: str
    dependencies: dict[str, Any]


class ReadinessResponse(BaseModel):
    """Readiness check response model."""

    ready: bool
    checks: dict[str, bool]


@router.get("/health", response_model=HealthResponse)
async def health_check(settings: Settings = Depends(get_settings)) -> HealthResponse:
    """
    Basic health check endpoint.

    Returns the service status and version information.
    """
    return HealthResponse(
        status="healthy",
        version=__version__,
        environment=settings.app_env,
        timestamp=datetime.now(timezone.utc).isoformat(),
        dependencies={
            "postgres": "configured",
            "redis": "configured",
            "lab_interface": "configured" if settings.lab_interface_base_url else "missing",
        },
    )


async def get_database_check() -> bool:
    return await check_database()


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check(
    database_ok: bool = Depends(get_database_check),
    cache: CacheService = Depends(get_cache),
) -> ReadinessResponse:
    """
    Readiness check endpoint.

    The service is ready when PostgreSQL answers. Redis only backs the
    last-run cache, so it is reported but not required.
    """
    checks = {
        "postgres": database_ok,
        "redis": await cache.health_check(),
    }

    return ReadinessResponse(
        ready=checks["postgres"],
        checks=checks,
    )


@router.get("/health/live")
async def liveness_check() -> dict[str, str]:
    """Returns 200 while the process is running."""
    return {"status": "alive"}
