"""
Redis Client

Shared async Redis connection. Redis backs the sliding-window rate limiter;
the API keeps working without it (the limiter falls back to process memory),
so startup only treats a connection failure as fatal in production.
"""

import logging

from redis.asyncio import Redis, from_url
from redis.exceptions import RedisError

from backoffice.core.config import settings

logger = logging.getLogger(__name__)

redis_client: Redis | None = None


async def init_redis(url: str | None = None) -> Redis:
    """Open the connection and verify it with a PING."""
    global redis_client

    client = from_url(
        url or settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    await client.ping()
    redis_client = client
    return client


async def redis_status() -> str:
    """'connected', 'not initialized' or 'error' for the readiness probe."""
    if redis_client is None:
        return "not initialized"
    try:
        await redis_client.ping()
        return "connected"
    except RedisError as e:
        logger.warning(f"Redis ping failed: {e}")
        return "error"


async def close_redis() -> None:
    global redis_client

    if redis_client is not None:
        await redis_client.aclose()
        redis_client = None
