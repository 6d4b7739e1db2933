"""Redis cache infrastructure with graceful degradation."""

from typing import Any

import orjson
import redis.asyncio as aioredis
import structlog

from confirmation_service.config import get_settings

logger = structlog.get_logger()

LAST_SYNC_RUN_KEY = "confirmation_sync:last_run"

_redis_client: aioredis.Redis | None = None


async def connect_redis(url: str) -> aioredis.Redis | None:
    """Open a Redis client and ping it, returning None when Redis is unreachable."""
    try:
        client = aioredis.from_url(
            url,
            decode_responses=False,
            socket_connect_timeout=2,
            socket_timeout=2,
            retry_on_timeout=True,
        )
        await client.ping()
        logger.info("Redis connection established")
        return client
    except Exception as e:
        logger.warning("Redis unavailable, caching disabled", error=str(e))
        return None


async def get_redis_client() -> aioredis.Redis | None:
    """Get or create the global async Redis client."""
    global _redis_client
    if _redis_client is None:
        _redis_client = await connect_redis(get_settings().redis_url)
    return _redis_client


async def close_redis() -> None:
    """Close the Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


class CacheService:
    """Async Redis cache with orjson serialization. No-ops if Redis is unavailable."""

    def __init__(self, client: aioredis.Redis | None):
        self.client = client

    async def get(self, key: str) -> Any | None:
        if not self.client:
            return None
        try:
            data = await self.client.get(key)
            if data:
                return orjson.loads(data)
        except Exception as e:
            logger.warning("Cache get failed", key=key, error=str(e))
        return None

    async def set(self, key: str, value: Any, ttl_seconds: int = 300) -> None:
        if not self.client:
            return
        try:
            await self.client.set(key, orjson.dumps(value), ex=ttl_seconds)
        except Exception as e:
            logger.warning("Cache set failed", key=key, error=str(e))

    async def store_last_sync_run(self, run: dict[str, Any], ttl_seconds: int) -> None:
        """Remember the summary of the most recent completed sync run."""
        await self.set(LAST_SYNC_RUN_KEY, run, ttl_seconds=ttl_seconds)

    async def get_last_sync_run(self) -> dict[str, Any] | None:
        return await self.get(LAST_SYNC_RUN_KEY)

    async def health_check(self) -> bool:
        if not self.client:
            return False
        try:
            return await self.client.ping()
        except Exception:
            return False


async def get_cache() -> CacheService:
    """FastAPI dependency returning a cache bound to the global client."""
    return CacheService(await get_redis_client())
