"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI

from confirmation_service import __version__
from confirmation_service.api.v1.router import api_router
from confirmation_service.config import get_settings
from confirmation_service.infrastructure.redis import close_redis
from confirmation_service.logging_config import configure_logging

configure_logging(get_settings())

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup and shutdown events."""
    settings = get_settings()
    logger.info(
        "Starting Lab Confirmation Sync Service",
        app_env=settings.app_env,
        debug=settings.debug,
    )

    yield

    await close_redis()
    logger.info("Shutting down Lab Confirmation Sync Service")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Lab Confirmation Sync API",
        description="Pulls lab order confirmations from the lab interface queue into the deployment tracker",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.include_router(api_router, prefix="/api/v1")

    return app


app = create_app()


def run() -> None:
    """Run the application using uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "confirmation_service.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        workers=1 if settings.debug else settings.api_workers,
    )


if __name__ == "__main__":
    run()
