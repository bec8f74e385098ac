"""One-shot password-reset tokens kept in Redis with a TTL."""

from __future__ import annotations

import secrets
import uuid
from typing import Optional

from app.core.config import get_settings
from app.core.redis import get_redis, redis_key

settings = get_settings()


async def issue_reset_token(user_id: uuid.UUID) -> str:
    token = secrets.token_urlsafe(32)
    redis = await get_redis()
    await redis.setex(
        redis_key("password-reset", token),
        settings.password_reset_ttl_seconds,
        str(user_id),
    )
    return token


async def consume_reset_token(token: str) -> Optional[uuid.UUID]:
    """Return the user the token was issued for and invalidate it.

    None if the token is unknown, expired or already used.
    """
    redis = await get_redis()
    value = await redis.getdel(redis_key("password-reset", token))
    if value is None:
        return None
    return uuid.UUID(value)
