"""
User service: registration, login, logout, password reset and view preferences.
"""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import (
    AuthenticatedUser,
    create_jwt,
    hash_password,
    revoke_jwt,
    verify_password,
)
from app.core.config import get_settings
from app.core.errors import AuthenticationFailed, EmailAlreadyRegistered
from app.models.base import utcnow
from app.models.user import User
from app.services.categories import create_default_categories
from app.services.mail import send_password_reset
from app.services.password_reset import consume_reset_token, issue_reset_token
from taskpad_shared.schemas.users import LastActiveView

log = structlog.get_logger()
settings = get_settings()


def _normalize_email(email: str) -> str:
    return email.strip().lower()


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(select(User).where(User.email == _normalize_email(email)))
    return result.scalar_one_or_none()


async def register_user(
    session: AsyncSession, email: str, password: str
) -> tuple[User, str]:
    """Create a user with the default categories. Returns (user, token)."""
    if await get_user_by_email(session, email):
        raise EmailAlreadyRegistered()

    now = utcnow()
    user = User(
        id=uuid.uuid4(),
        email=_normalize_email(email),
        password_hash=hash_password(password),
        last_login_at=now,
    )
    session.add(user)
    await session.flush()
    await create_default_categories(session, user.id, settings.default_categories)

    token, _jti = create_jwt(user.id, user.email)
    log.info("user.registered", user_id=str(user.id))
    return user, token


async def authenticate_user(
    session: AsyncSession, email: str, password: str
) -> tuple[User, str]:
    user = await get_user_by_email(session, email)
    if not user or not verify_password(password, user.password_hash):
        log.warning("auth.login_failure", reason="bad_credentials")
        raise AuthenticationFailed("Invalid email or password.")

    user.last_login_at = utcnow()
    session.add(user)
    await session.flush()

    token, _jti = create_jwt(user.id, user.email)
    log.info("auth.login", user_id=str(user.id))
    return user, token


async def logout(auth: AuthenticatedUser) -> None:
    """Revoke the presented token until it would have expired on its own."""
    if auth.jti:
        await revoke_jwt(auth.jti, auth.seconds_until_expiry())
    log.info("auth.logout", user_id=str(auth.user_id))


async def request_password_reset(session: AsyncSession, email: str) -> None:
    """Issue and mail a reset token if the account exists. Silent otherwise."""
    user = await get_user_by_email(session, email)
    if user is None:
        log.info("auth.reset_requested", known=False)
        return
    token = await issue_reset_token(user.id)
    await send_password_reset(user.email, token)
    log.info("auth.reset_requested", known=True, user_id=str(user.id))


async def reset_password(session: AsyncSession, token: str, new_password: str) -> User:
    user_id = await consume_reset_token(token)
    user = await session.get(User, user_id) if user_id else None
    if user is None:
        raise AuthenticationFailed("Invalid or expired password reset token.")

    user.password_hash = hash_password(new_password)
    user.updated_at = utcnow()
    session.add(user)
    await session.flush()
    log.info("auth.password_reset", user_id=str(user.id))
    return user


async def update_last_active_view(
    session: AsyncSession, user: User, view: LastActiveView
) -> User:
    user.last_active_view = view.model_dump(mode="json")
    user.updated_at = utcnow()
    session.add(user)
    await session.flush()
    return user
