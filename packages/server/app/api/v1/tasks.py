"""
Task endpoints: CRUD, completion toggles, manual ordering and search.

Ordering rules (active tasks only):
- New tasks go to the top (index 0).
- Completing a task closes its gap; uncompleting appends it to the end.
- PATCH with ``order_index`` moves one task; PUT /order replaces the whole order.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AuthenticatedUser, get_current_user
from app.core.database import get_session
from app.services.tasks import (
    create_task,
    delete_task,
    get_task,
    list_active_tasks,
    list_completed_tasks,
    reorder_active_tasks,
    search_tasks,
    update_task,
)
from taskpad_shared.schemas.common import SortOrder, TaskPriority
from taskpad_shared.schemas.tasks import (
    TaskCreate,
    TaskOrder,
    TaskRead,
    TaskSortField,
    TaskUpdate,
)

router = APIRouter()

UNCATEGORIZED = "null"


def _parse_category_filter(raw: Optional[str]) -> tuple[Optional[uuid.UUID], bool]:
    """``"null"`` selects uncategorized tasks; anything else must be a UUID."""
    if raw is None:
        return None, False
    if raw == UNCATEGORIZED:
        return None, True
    try:
        return uuid.UUID(raw), False
    except ValueError:
        raise HTTPException(status_code=400, detail="category_id must be a UUID or 'null'.")


# ---------------------------------------------------------------------------
# Lists and search
# ---------------------------------------------------------------------------


@router.get("", response_model=List[TaskRead])
async def search_tasks_endpoint(
    query: Optional[str] = Query(None, max_length=255),
    category_id: Optional[str] = None,
    priority: Optional[TaskPriority] = None,
    is_completed: bool = False,
    due_date_before: Optional[datetime] = None,
    due_date_after: Optional[datetime] = None,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    sort_by: Optional[TaskSortField] = None,
    sort_order: Optional[SortOrder] = None,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Filter and sort the caller's tasks. Defaults to the active list in manual order."""
    category, uncategorized = _parse_category_filter(category_id)
    return await search_tasks(
        session,
        auth.user_id,
        is_completed=is_completed,
        query=query,
        category_id=category,
        uncategorized=uncategorized,
        priority=priority,
        due_before=due_date_before,
        due_after=due_date_after,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        offset=offset,
    )


@router.get("/active", response_model=List[TaskRead])
async def list_active_endpoint(
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await list_active_tasks(session, auth.user_id)


@router.get("/completed", response_model=List[TaskRead])
async def list_completed_endpoint(
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await list_completed_tasks(session, auth.user_id)


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------


@router.put("/order", response_model=List[TaskRead])
async def reorder_tasks_endpoint(
    body: TaskOrder,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Replace the active order in one go. ``task_ids`` lists every active task, top first."""
    tasks = await reorder_active_tasks(session, auth.user_id, body.task_ids)
    await session.commit()
    return tasks


# ---------------------------------------------------------------------------
# Task CRUD
# ---------------------------------------------------------------------------


@router.post("", response_model=TaskRead, status_code=201)
async def create_task_endpoint(
    task_in: TaskCreate,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    task = await create_task(session, auth.user_id, task_in)
    await session.commit()
    await session.refresh(task)
    return task


@router.get("/{task_id}", response_model=TaskRead)
async def get_task_endpoint(
    task_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await get_task(session, task_id, auth.user_id)


@router.patch("/{task_id}", response_model=TaskRead)
async def update_task_endpoint(
    task_id: uuid.UUID,
    task_in: TaskUpdate,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Update fields, toggle completion or move the task within the active list."""
    task = await update_task(session, task_id, auth.user_id, task_in)
    await session.commit()
    await session.refresh(task)
    return task


@router.delete("/{task_id}", status_code=204)
async def delete_task_endpoint(
    task_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    await delete_task(session, task_id, auth.user_id)
    await session.commit()
    return Response(status_code=204)
