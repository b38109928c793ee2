"""
Rate Limiting Module

Provides rate limiting for API endpoints using Redis as the backend.
Falls back to in-memory storage if Redis is unavailable.

Applied to the public endpoints (application intake, contact messages)
and to staff login.
"""

import logging
import time
from collections.abc import Callable
from functools import wraps
from typing import Any
from uuid import uuid4

from fastapi import HTTPException, Request, status

from backoffice.core import redis as redis_module

logger = logging.getLogger(__name__)

# In-memory rate limit storage (fallback when Redis unavailable)
# Format: {key: [timestamp, ...]}
_memory_store: dict[str, list[float]] = {}
# When each key stops mattering, mirroring the Redis EXPIRE
_memory_expiry: dict[str, float] = {}
_SWEEP_INTERVAL_SECONDS = 60
_last_sweep = 0.0


class RateLimitExceeded(HTTPException):
    """Exception raised when rate limit is exceeded."""

    def __init__(self, limit: int, window_seconds: int):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "RATE_LIMIT_EXCEEDED",
                "message": f"Too many requests. Maximum {limit} requests per "
                f"{window_seconds // 60 or 1} minute(s), please try again later.",
            },
            headers={"Retry-After": str(window_seconds)},
        )


def client_ip(request: Request) -> str:
    """Best-effort client address, honouring the first X-Forwarded-For hop."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def _check_rate_limit_redis(
    client,
    key: str,
    limit: int,
    window_seconds: int,
) -> bool:
    """
    Check rate limit using Redis.

    Uses a sliding window algorithm with Redis sorted sets.

    Returns:
        True if request is allowed, False if rate limit exceeded
    """
    now = time.time()
    window_start = now - window_seconds

    pipe = client.pipeline()
    pipe.zremrangebyscore(key, 0, window_start)
    pipe.zcard(key)
    pipe.zadd(key, {f"{now}:{uuid4().hex[:8]}": now})
    pipe.expire(key, window_seconds)

    results = await pipe.execute()
    current_count = results[1]

    return current_count < limit


async def _check_rate_limit_memory(
    key: str,
    limit: int,
    window_seconds: int,
) -> bool:
    """
    Check rate limit using in-memory storage.

    Fallback when Redis is unavailable. Note: This doesn't work
    across multiple server instances.
    """
    now = time.time()
    window_start = now - window_seconds
    _sweep_memory_store(now)

    hits = [ts for ts in _memory_store.get(key, []) if ts > window_start]

    if len(hits) >= limit:
        _memory_store[key] = hits
        return False

    hits.append(now)
    _memory_store[key] = hits
    _memory_expiry[key] = now + window_seconds
    return True


def _sweep_memory_store(now: float) -> None:
    """Drop keys whose window has passed so idle clients don't accumulate."""
    global _last_sweep

    if now - _last_sweep < _SWEEP_INTERVAL_SECONDS:
        return
    _last_sweep = now

    expired = [key for key, expires_at in _memory_expiry.items() if expires_at <= now]
    for key in expired:
        _memory_store.pop(key, None)
        _memory_expiry.pop(key, None)


async def check_rate_limit(
    key: str,
    limit: int,
    window_seconds: int,
) -> bool:
    """
    Check if a request is within rate limits.

    Tries Redis first, falls back to in-memory storage.

    Args:
        key: Unique key for this rate limit (e.g., "applications:submit:1.2.3.4")
        limit: Maximum requests allowed in the window
        window_seconds: Time window in seconds

    Returns:
        True if request is allowed, False if rate limit exceeded
    """
    client = redis_module.redis_client

    if client is not None:
        try:
            return await _check_rate_limit_redis(client, key, limit, window_seconds)
        except Exception as e:
            logger.warning(f"Redis rate limit check failed, using memory: {e}")

    return await _check_rate_limit_memory(key, limit, window_seconds)


def reset_memory_store() -> None:
    """Clear the in-memory fallback store."""
    global _last_sweep

    _memory_store.clear()
    _memory_expiry.clear()
    _last_sweep = 0.0


def rate_limit(
    limit: int = 10,
    window_seconds: int = 60,
    key_func: Callable[[Request], str] | None = None,
):
    """
    Rate limiting decorator for FastAPI endpoints.

    The decorated endpoint must declare a ``request: Request`` parameter.

    Usage:
        @router.post("")
        @rate_limit(limit=10, window_seconds=900)
        async def submit(request: Request, ...):
            ...

    Args:
        limit: Maximum requests allowed in the window (default: 10)
        window_seconds: Time window in seconds (default: 60)
        key_func: Optional function to generate rate limit key from request.
                  Default uses client IP + endpoint path.

    Raises:
        RateLimitExceeded: When rate limit is exceeded (HTTP 429)
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            request: Request | None = kwargs.get("request")
            if request is None:
                request = next((arg for arg in args if isinstance(arg, Request)), None)

            if request is None:
                logger.warning(
                    f"Rate limit decorator on {func.__name__} couldn't find Request object"
                )
                return await func(*args, **kwargs)

            if key_func:
                key = key_func(request)
            else:
                key = f"rate_limit:{client_ip(request)}:{request.url.path}"

            allowed = await check_rate_limit(key, limit, window_seconds)

            if not allowed:
                logger.warning(f"Rate limit exceeded for {key}: {limit}/{window_seconds}s")
                raise RateLimitExceeded(limit, window_seconds)

            return await func(*args, **kwargs)

        return wrapper

    return decorator


__all__ = [
    "rate_limit",
    "check_rate_limit",
    "client_ip",
    "reset_memory_store",
    "RateLimitExceeded",
]
