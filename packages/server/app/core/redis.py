"""Redis connection management (notification pub/sub, ARQ)."""

from __future__ import annotations

import redis.asyncio as redis
import structlog

from app.core.config import get_settings

settings = get_settings()
log = structlog.get_logger()

_redis_pool: redis.Redis | None = None


async def get_redis() -> redis.Redis:
    """Get or create the Redis connection."""
    global _redis_pool
    if _redis_pool is None:
        _redis_pool = redis.from_url(
            settings.redis_url,
            decode_responses=True,
        )
    return _redis_pool


async def redis_available() -> bool:
    """Readiness probe helper; never raises."""
    try:
        client = await get_redis()
        return bool(await client.ping())
    except Exception:
        log.warning("redis.unreachable", url=settings.redis_url)
        return False


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _redis_pool
    if _redis_pool is not None:
        await _redis_pool.aclose()
        _redis_pool = None
