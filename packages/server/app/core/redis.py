"""Redis connection management and key naming."""

from __future__ import annotations

import redis.asyncio as redis

from app.core.config import get_settings

settings = get_settings()

_redis_client: redis.Redis | None = None


def redis_key(*parts: str) -> str:
    """Build a namespaced key, e.g. ``taskpad:jwt:revoked:<jti>``."""
    return settings.redis_key_prefix + ":".join(parts)


async def get_redis() -> redis.Redis:
    """Get or lazily create the shared Redis client."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(settings.redis_url, decode_responses=True)
    return _redis_client


async def close_redis() -> None:
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
