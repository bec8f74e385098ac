"""
Task store: persistence primitives for task rows.

A ``TaskStore`` is bound to one ``AsyncSession``, i.e. one unit of work.
Writers call ``lock_owner`` first; the lock is held until the session
commits or rolls back, so two requests for the same user never interleave
their range shifts. Different users never contend.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

import sqlalchemy as sa
import structlog
from sqlalchemy import func, text, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.core.errors import ConstraintViolation, NotFound
from app.models.task import Task
from app.models.user import User
from app.services.categories import category_exists
from app.services.ordering import Shift
from taskpad_shared.schemas.common import PRIORITY_RANK, SortOrder, TaskPriority
from taskpad_shared.schemas.tasks import TaskSortField

log = structlog.get_logger()
settings = get_settings()


def _active(user_id: uuid.UUID):
    return sa.and_(Task.user_id == user_id, Task.is_completed.is_(False))


class TaskStore:
    """Durable CRUD for task rows plus the range-shift primitives."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # -- Locking --

    async def lock_owner(self, user_id: uuid.UUID) -> None:
        """Serialize writers on one user's task list for the rest of the transaction."""
        if self.session.get_bind().dialect.name == "postgresql":
            # Fail (and roll back) instead of queueing forever behind another request.
            await self.session.execute(
                text(f"SET LOCAL lock_timeout = '{int(settings.lock_timeout_ms)}ms'")
            )
        await self.session.execute(
            select(User.id).where(User.id == user_id).with_for_update()
        )

    # -- Reads --

    async def find(self, task_id: uuid.UUID) -> Optional[Task]:
        """Unscoped lookup, used only to tell "not yours" from "not there"."""
        return await self.session.get(Task, task_id)

    async def get(self, task_id: uuid.UUID, user_id: uuid.UUID) -> Task:
        """Fetch-for-update. Raises NotFound unless the task exists *and* is owned by user_id."""
        result = await self.session.execute(
            select(Task)
            .where(Task.id == task_id, Task.user_id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        task = result.scalar_one_or_none()
        if task is None:
            raise NotFound("Task not found or does not belong to user.")
        return task

    async def max_active_index(self, user_id: uuid.UUID) -> Optional[int]:
        """Highest active order_index, or None when the user has no active tasks."""
        result = await self.session.execute(
            sa.select(func.max(Task.order_index)).where(_active(user_id))
        )
        return result.scalar()

    async def active_positions(self, user_id: uuid.UUID) -> dict[uuid.UUID, int]:
        result = await self.session.execute(
            sa.select(Task.id, Task.order_index).where(_active(user_id))
        )
        return {row.id: row.order_index for row in result}

    async def list_active(self, user_id: uuid.UUID) -> list[Task]:
        result = await self.session.execute(
            select(Task)
            .where(_active(user_id))
            .order_by(Task.order_index.asc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def list_completed(self, user_id: uuid.UUID) -> list[Task]:
        result = await self.session.execute(
            select(Task)
            .where(Task.user_id == user_id, Task.is_completed.is_(True))
            .order_by(Task.completed_at.desc(), Task.id)
        )
        return list(result.scalars().all())

    async def search(
        self,
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
        stmt = select(Task).where(Task.user_id == user_id, Task.is_completed.is_(is_completed))

        if query:
            stmt = stmt.where(
                sa.or_(
                    Task.title.icontains(query, autoescape=True),
                    Task.description.icontains(query, autoescape=True),
                )
            )
        if uncategorized:
            stmt = stmt.where(Task.category_id.is_(None))
        elif category_id is not None:
            stmt = stmt.where(Task.category_id == category_id)
        if priority:
            stmt = stmt.where(Task.priority == priority.value)
        if due_before:
            stmt = stmt.where(Task.due_date_at <= due_before)
        if due_after:
            stmt = stmt.where(Task.due_date_at >= due_after)

        if sort_by is None:
            sort_by = TaskSortField.COMPLETED_AT if is_completed else TaskSortField.ORDER_INDEX
        if sort_order is None:
            sort_order = SortOrder.DESC if sort_by == TaskSortField.COMPLETED_AT else SortOrder.ASC

        stmt = stmt.order_by(*self._ordering(sort_by, sort_order), Task.id)
        result = await self.session.execute(stmt.offset(offset).limit(limit))
        return list(result.scalars().all())

    @staticmethod
    def _ordering(sort_by: TaskSortField, sort_order: SortOrder) -> list[Any]:
        def directed(column):
            return column.desc() if sort_order == SortOrder.DESC else column.asc()

        priority_rank = sa.case(
            {p.value: rank for p, rank in PRIORITY_RANK.items()},
            value=Task.priority,
            else_=len(PRIORITY_RANK),
        )
        if sort_by == TaskSortField.URGENCY:
            now = datetime.now(timezone.utc)
            overdue = sa.case(
                (sa.and_(Task.due_date_at.is_not(None), Task.due_date_at < now), 0),
                else_=1,
            )
            return [
                overdue,
                Task.due_date_at.is_(None),
                Task.due_date_at.asc(),
                priority_rank,
                Task.order_index.asc(),
            ]
        if sort_by == TaskSortField.PRIORITY:
            return [directed(priority_rank)]
        if sort_by in (TaskSortField.DUE_DATE_AT, TaskSortField.COMPLETED_AT):
            column = getattr(Task, sort_by.value)
            # Tasks without a date go last in either direction.
            return [column.is_(None), directed(column)]
        return [directed(getattr(Task, sort_by.value))]

    # -- Writes --

    async def insert(self, task: Task) -> Task:
        """Persist a new row. The caller has already made room at its order_index."""
        if task.category_id is not None and not await category_exists(
            self.session, task.category_id, task.user_id
        ):
            raise ConstraintViolation("Task category must belong to the task owner.")
        self.session.add(task)
        await self.session.flush()
        return task

    async def shift_active_range(
        self,
        user_id: uuid.UUID,
        shift: Shift,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> int:
        """Apply ``shift.delta`` to the user's active tasks indexed in the shift's range.

        Returns the number of rows moved.
        """
        stmt = update(Task).where(_active(user_id), Task.order_index >= shift.start)
        if shift.stop is not None:
            stmt = stmt.where(Task.order_index <= shift.stop)
        if exclude_id is not None:
            stmt = stmt.where(Task.id != exclude_id)
        stmt = stmt.values(order_index=Task.order_index + shift.delta).execution_options(
            synchronize_session="fetch"
        )
        result = await self.session.execute(stmt)
        log.debug(
            "task_store.shifted",
            user_id=str(user_id),
            start=shift.start,
            stop=shift.stop,
            delta=shift.delta,
            moved=result.rowcount,
        )
        return result.rowcount

    async def assign_indices(
        self, user_id: uuid.UUID, assignments: Mapping[uuid.UUID, int]
    ) -> None:
        """Write explicit indices for several active tasks in one statement."""
        if not assignments:
            return
        await self.session.execute(
            update(Task)
            .where(_active(user_id), Task.id.in_(list(assignments)))
            .values(
                order_index=sa.case(
                    *[(Task.id == task_id, index) for task_id, index in assignments.items()],
                    else_=Task.order_index,
                )
            )
            .execution_options(synchronize_session="fetch")
        )

    async def update(
        self, task_id: uuid.UUID, user_id: uuid.UUID, fields: Mapping[str, Any]
    ) -> Task:
        task = await self.get(task_id, user_id)
        for key, value in fields.items():
            setattr(task, key, value)
        self.session.add(task)
        await self.session.flush()
        return task

    async def delete(self, task_id: uuid.UUID, user_id: uuid.UUID) -> Task:
        task = await self.get(task_id, user_id)
        await self.session.delete(task)
        await self.session.flush()
        return task
