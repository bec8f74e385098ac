"""Current-user endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AuthenticatedUser, get_current_user
from app.core.database import get_session
from app.services.users import update_last_active_view
from taskpad_shared.schemas.users import LastActiveView, UserRead

router = APIRouter()


@router.get("/me", response_model=UserRead)
async def get_me(auth: AuthenticatedUser = Depends(get_current_user)):
    return auth.user


@router.put("/me/last-active-view", response_model=UserRead)
async def put_last_active_view(
    body: LastActiveView,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Remember which dashboard filter the user last had open."""
    user = await update_last_active_view(session, auth.user, body)
    await session.commit()
    await session.refresh(user)
    return user
