"""
Authentication endpoints.

- Email/password registration and login, returning a bearer JWT
- Logout by revoking the presented token
- Password reset through a one-shot emailed token
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AuthenticatedUser, get_current_user
from app.core.database import get_session
from app.services import users as user_service
from taskpad_shared.schemas.common import MessageResponse
from taskpad_shared.schemas.users import (
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    UserRead,
)

router = APIRouter()


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    body: RegisterRequest,
    session: AsyncSession = Depends(get_session),
):
    """Register with email/password. The account starts with the default categories."""
    user, token = await user_service.register_user(session, body.email, body.password)
    await session.commit()
    await session.refresh(user)
    return AuthResponse(user=UserRead.model_validate(user), token=token)


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    session: AsyncSession = Depends(get_session),
):
    user, token = await user_service.authenticate_user(session, body.email, body.password)
    await session.commit()
    await session.refresh(user)
    return AuthResponse(user=UserRead.model_validate(user), token=token)


@router.post("/logout", response_model=MessageResponse)
async def logout(auth: AuthenticatedUser = Depends(get_current_user)):
    await user_service.logout(auth)
    return MessageResponse(message="Logged out successfully.")


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    body: ForgotPasswordRequest,
    session: AsyncSession = Depends(get_session),
):
    """Always answers the same way so the endpoint can't be used to probe for accounts."""
    await user_service.request_password_reset(session, body.email)
    return MessageResponse(
        message="If an account exists for that email, a reset link has been sent."
    )


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    body: ResetPasswordRequest,
    session: AsyncSession = Depends(get_session),
):
    await user_service.reset_password(session, body.token, body.new_password)
    await session.commit()
    return MessageResponse(message="Password has been reset.")
