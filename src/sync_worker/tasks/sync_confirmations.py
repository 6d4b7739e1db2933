"""Lab order confirmation synchronization tasks."""

import asyncio
from typing import Any

import structlog
from celery import shared_task

from confirmation_service.config import get_settings
from confirmation_service.errors import ConfirmationSyncError
from confirmation_service.infrastructure.database.connection import (
    get_async_engine,
    get_async_session_factory,
)
from confirmation_service.infrastructure.redis import CacheService, connect_redis
from confirmation_service.services.confirmation_store import ConfirmationStore
from confirmation_service.services.confirmation_sync import execute_confirmation_sync

logger = structlog.get_logger()


async def _run_confirmation_sync() -> tuple[int, dict[str, Any]]:
    """Run one pass with an engine and Redis client scoped to this event loop."""
    settings = get_settings()
    engine = get_async_engine()
    redis_client = await connect_redis(settings.redis_url)
    try:
        store = ConfirmationStore(get_async_session_factory(engine))
        return await execute_confirmation_sync(
            settings, store=store, cache=CacheService(redis_client)
        )
    finally:
        if redis_client is not None:
            await redis_client.aclose()
        await engine.dispose()


@shared_task(bind=True, max_retries=3, default_retry_delay=300)
def sync_lab_confirmations(self) -> dict:
    """
    Pull pending order confirmations from the lab interface.

    This task:
    1. Lists pending confirmations in the lab interface queue
    2. Fetches, parses and stores each confirmation
    3. Acknowledges each stored confirmation upstream

    Returns:
        dict: Summary of sync operation
    """
    logger.info("Starting confirmation sync from lab interface")

    status_code, body = asyncio.run(_run_confirmation_sync())
    if status_code != 200:
        logger.error("Confirmation sync failed", details=body.get("details"))
        raise self.retry(exc=ConfirmationSyncError(body.get("details") or body["error"]))

    return body["summary"]
