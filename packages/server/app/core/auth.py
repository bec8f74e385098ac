"""
Authentication for TaskPad.

- bcrypt password hashing
- JWT bearer tokens carrying the user id and email
- Logout by adding the token's jti to a Redis revocation list until it expires
- ``get_current_user`` FastAPI dependency scoping every request to one user
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
import structlog
from fastapi import Depends
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_session
from app.core.errors import AuthenticationFailed
from app.core.redis import get_redis, redis_key
from app.models.user import User

log = structlog.get_logger()
settings = get_settings()

authorization_header = APIKeyHeader(name="Authorization", auto_error=False)

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    """Hash a password using bcrypt with cost factor 12."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=12)).decode()


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against a bcrypt hash."""
    return bcrypt.checkpw(password.encode(), hashed.encode())


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

def create_jwt(
    user_id: uuid.UUID,
    email: str,
    *,
    expires_delta: timedelta | None = None,
) -> tuple[str, str]:
    """Create a signed JWT. Returns (token, jti)."""
    jti = str(uuid.uuid4())
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    payload = {
        "sub": str(user_id),
        "email": email,
        "iat": now,
        "exp": exp,
        "jti": jti,
    }
    token = jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)
    return token, jti


def decode_jwt(token: str) -> dict:
    """Decode and verify a JWT. Raises jwt.PyJWTError on failure."""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])


# ---------------------------------------------------------------------------
# JWT Revocation (Redis)
# ---------------------------------------------------------------------------

async def revoke_jwt(jti: str, ttl_seconds: int) -> None:
    """Add a JWT ID to the revocation list until the token would expire anyway."""
    redis = await get_redis()
    await redis.setex(redis_key("jwt", "revoked", jti), max(ttl_seconds, 1), "1")


async def is_jwt_revoked(jti: str) -> bool:
    redis = await get_redis()
    return await redis.exists(redis_key("jwt", "revoked", jti)) > 0


# ---------------------------------------------------------------------------
# Authentication dependency
# ---------------------------------------------------------------------------

class AuthenticatedUser:
    """Container for the authenticated user and the token they presented."""

    def __init__(self, user: User, jti: str, expires_at: datetime):
        self.user = user
        self.user_id = user.id
        self.email = user.email
        self.jti = jti
        self.expires_at = expires_at

    def seconds_until_expiry(self) -> int:
        return int((self.expires_at - datetime.now(timezone.utc)).total_seconds())


def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationFailed("Authentication token required.")
    token = authorization[7:].strip()
    if not token:
        raise AuthenticationFailed("Authentication token required.")
    return token


async def get_current_user(
    authorization: Optional[str] = Depends(authorization_header),
    session: AsyncSession = Depends(get_session),
) -> AuthenticatedUser:
    """Resolve the bearer JWT to a user. Every task/category route depends on this."""
    token = _bearer_token(authorization)
    try:
        payload = decode_jwt(token)
        user_id = uuid.UUID(payload["sub"])
    except (jwt.PyJWTError, KeyError, ValueError) as exc:
        log.info("auth.token_rejected", reason=type(exc).__name__)
        raise AuthenticationFailed("Invalid or expired token.")

    jti = payload.get("jti")
    if jti and await is_jwt_revoked(jti):
        raise AuthenticationFailed("Token has been revoked.")

    user = await session.get(User, user_id)
    if not user:
        raise AuthenticationFailed("User not found.")

    expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
    return AuthenticatedUser(user=user, jti=jti or "", expires_at=expires_at)
