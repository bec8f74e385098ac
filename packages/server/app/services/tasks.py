"""
Task service layer: one request intent -> ordering plan -> store writes.

Handles:
- Create at the top of the active list
- Partial updates, completion toggles and single-task reorder
- Delete with compaction of the active list
- Batch reorder of the whole active list
- Listing and search

Every write takes the owner's lock before reading the rows it will shift.
Nothing is committed here; the caller's session commits the whole unit of
work or rolls it back, so a failed request leaves every index untouched.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional, Sequence

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import CategoryNotFound, Forbidden, NotFound
from app.models.base import utcnow
from app.models.task import Task
from app.services import ordering
from app.services.categories import category_exists
from app.services.task_store import TaskStore
from taskpad_shared.schemas.common import SortOrder, TaskPriority
from taskpad_shared.schemas.tasks import TaskCreate, TaskSortField, TaskUpdate

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _check_owner(store: TaskStore, task_id: uuid.UUID, user_id: uuid.UUID) -> None:
    task = await store.find(task_id)
    if task is None:
        raise NotFound("Task not found.")
    if task.user_id != user_id:
        raise Forbidden("Task belongs to another user.")


async def _check_category(
    session: AsyncSession, category_id: Optional[uuid.UUID], user_id: uuid.UUID
) -> None:
    if category_id is not None and not await category_exists(session, category_id, user_id):
        raise CategoryNotFound()


async def _apply_shifts(
    store: TaskStore,
    user_id: uuid.UUID,
    plan: ordering.OrderingPlan,
    exclude_id: Optional[uuid.UUID] = None,
) -> None:
    for shift in plan.shifts:
        await store.shift_active_range(user_id, shift, exclude_id=exclude_id)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def get_task(session: AsyncSession, task_id: uuid.UUID, user_id: uuid.UUID) -> Task:
    store = TaskStore(session)
    await _check_owner(store, task_id, user_id)
    return await store.find(task_id)


async def list_active_tasks(session: AsyncSession, user_id: uuid.UUID) -> list[Task]:
    return await TaskStore(session).list_active(user_id)


async def list_completed_tasks(session: AsyncSession, user_id: uuid.UUID) -> list[Task]:
    return await TaskStore(session).list_completed(user_id)


async def search_tasks(
    session: AsyncSession,
    user_id: uuid.UUID,
    *,
    is_completed: bool = False,
    query: Optional[str] = None,
    category_id: Optional[uuid.UUID] = None,
    uncategorized: bool = False,
    priority: Optional[TaskPriority] = None,
    due_before: Optional[datetime] = None,
    due_after: Optional[datetime] = None,
    sort_by: Optional[TaskSortField] = None,
    sort_order: Optional[SortOrder] = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Task]:
    return await TaskStore(session).search(
        user_id,
        is_completed=is_completed,
        query=query,
        category_id=category_id,
        uncategorized=uncategorized,
        priority=priority,
        due_before=due_before,
        due_after=due_after,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        offset=offset,
    )


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


async def create_task(
    session: AsyncSession, user_id: uuid.UUID, task_in: TaskCreate
) -> Task:
    """Insert at the top of the active list. A client-supplied order_index is ignored."""
    await _check_category(session, task_in.category_id, user_id)

    store = TaskStore(session)
    await store.lock_owner(user_id)

    plan = ordering.plan_insert()
    await _apply_shifts(store, user_id, plan)
    task = await store.insert(
        Task(
            user_id=user_id,
            category_id=task_in.category_id,
            title=task_in.title,
            description=task_in.description,
            due_date_at=task_in.due_date_at,
            priority=task_in.priority.value,
            is_completed=plan.is_completed,
            completed_at=None,
            order_index=plan.order_index,
        )
    )
    log.info("task.created", task_id=str(task.id), user_id=str(user_id))
    return task


async def update_task(
    session: AsyncSession,
    task_id: uuid.UUID,
    user_id: uuid.UUID,
    task_in: TaskUpdate,
) -> Task:
    """Apply a partial update.

    Plain fields (title, description, due date, priority, category) are
    overwritten. A change of ``is_completed`` runs the complete/uncomplete
    transition and wins over any ``order_index`` in the same request;
    otherwise a new ``order_index`` on an active task reorders it.
    """
    store = TaskStore(session)
    await store.lock_owner(user_id)
    await _check_owner(store, task_id, user_id)
    task = await store.get(task_id, user_id)

    data = task_in.model_dump(exclude_unset=True)
    requested_completed = data.pop("is_completed", None)
    requested_index = data.pop("order_index", None)

    if "category_id" in data:
        await _check_category(session, data["category_id"], user_id)
    if data.get("priority") is not None:
        data["priority"] = TaskPriority(data["priority"]).value

    plan = ordering.plan_update(
        ordering.TaskPosition(order_index=task.order_index, is_completed=task.is_completed),
        is_completed=requested_completed,
        order_index=requested_index,
        max_active_index=await store.max_active_index(user_id),
    )
    await _apply_shifts(store, user_id, plan, exclude_id=task.id)

    now = utcnow()
    fields = dict(data)
    if plan.is_completed is not None:
        fields["is_completed"] = plan.is_completed
        fields["completed_at"] = now if plan.is_completed else None
    if plan.order_index is not None:
        fields["order_index"] = plan.order_index
    fields["updated_at"] = now

    task = await store.update(task_id, user_id, fields)

    if plan.is_completed is not None:
        log.info(
            "task.completed" if plan.is_completed else "task.uncompleted",
            task_id=str(task_id),
            user_id=str(user_id),
            order_index=task.order_index,
        )
    elif plan.order_index is not None:
        log.info(
            "task.reordered",
            task_id=str(task_id),
            user_id=str(user_id),
            order_index=task.order_index,
        )
    return task


async def delete_task(session: AsyncSession, task_id: uuid.UUID, user_id: uuid.UUID) -> None:
    """Delete a task and close the gap it leaves in the active list."""
    store = TaskStore(session)
    await store.lock_owner(user_id)
    await _check_owner(store, task_id, user_id)

    task = await store.delete(task_id, user_id)
    plan = ordering.plan_delete(
        ordering.TaskPosition(order_index=task.order_index, is_completed=task.is_completed)
    )
    await _apply_shifts(store, user_id, plan)
    log.info("task.deleted", task_id=str(task_id), user_id=str(user_id))


async def reorder_active_tasks(
    session: AsyncSession, user_id: uuid.UUID, ordered_ids: Sequence[uuid.UUID]
) -> list[Task]:
    """Rewrite the whole active order in one transaction (drag-and-drop)."""
    store = TaskStore(session)
    await store.lock_owner(user_id)

    assignments = ordering.plan_sequence(await store.active_positions(user_id), ordered_ids)
    await store.assign_indices(user_id, assignments)
    log.info("task.order_replaced", user_id=str(user_id), moved=len(assignments))
    return await store.list_active(user_id)
