"""Category endpoints. Deleting a category keeps its tasks, uncategorized."""

from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AuthenticatedUser, get_current_user
from app.core.database import get_session
from app.services.categories import (
    create_category,
    delete_category,
    list_categories,
    rename_category,
)
from taskpad_shared.schemas.categories import (
    CategoryCreate,
    CategoryRead,
    CategorySortField,
    CategoryUpdate,
)
from taskpad_shared.schemas.common import SortOrder

router = APIRouter()


@router.get("", response_model=List[CategoryRead])
async def list_categories_endpoint(
    query: Optional[str] = Query(None, max_length=255),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    sort_by: CategorySortField = CategorySortField.NAME,
    sort_order: SortOrder = SortOrder.ASC,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await list_categories(
        session,
        auth.user_id,
        query=query,
        limit=limit,
        offset=offset,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.post("", response_model=CategoryRead, status_code=201)
async def create_category_endpoint(
    body: CategoryCreate,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    category = await create_category(session, auth.user_id, body.name)
    await session.commit()
    await session.refresh(category)
    return category


@router.patch("/{category_id}", response_model=CategoryRead)
async def rename_category_endpoint(
    category_id: uuid.UUID,
    body: CategoryUpdate,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    category = await rename_category(session, category_id, auth.user_id, body.name)
    await session.commit()
    await session.refresh(category)
    return category


@router.delete("/{category_id}", status_code=204)
async def delete_category_endpoint(
    category_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    await delete_category(session, category_id, auth.user_id)
    await session.commit()
    return Response(status_code=204)
