"""Task model."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Task(UUIDMixin, TimestampMixin, SQLModel, table=True):
    """A user's task.

    ``order_index`` is dense over the owner's incomplete tasks (0..N-1). On a
    completed task it is frozen and carries no ordering meaning.
    ``completed_at`` is set exactly when ``is_completed`` is true.
    """

    __tablename__ = "tasks"
    __table_args__ = (
        sa.Index("ix_tasks_user_active_order", "user_id", "is_completed", "order_index"),
    )

    user_id: uuid.UUID = Field(foreign_key="users.id", ondelete="CASCADE", nullable=False, index=True)
    # Weak reference: deleting the category nulls it, the task survives.
    category_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="categories.id", ondelete="SET NULL", nullable=True, index=True
    )
    title: str = Field(nullable=False, max_length=255)
    description: Optional[str] = Field(default=None, max_length=5000)
    due_date_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    priority: str = Field(nullable=False, default="medium")  # low | medium | high
    is_completed: bool = Field(nullable=False, default=False)
    completed_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    order_index: int = Field(nullable=False, default=0)
