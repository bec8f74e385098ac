"""Task-related Pydantic schemas for shared use across server and frontend codegen."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from .common import TaskPriority


# ---------------------------------------------------------------------------
# Task CRUD
# ---------------------------------------------------------------------------

class TaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=5000)
    due_date_at: Optional[datetime] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    category_id: Optional[UUID] = None
    # Accepted for client compatibility; new tasks always go to the top.
    order_index: Optional[int] = None


class TaskUpdate(BaseModel):
    """Partial update. Only fields present in the request body are applied."""
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=5000)
    due_date_at: Optional[datetime] = None
    priority: Optional[TaskPriority] = None
    category_id: Optional[UUID] = None
    is_completed: Optional[bool] = None
    # Bounds are checked against the live active partition, not here.
    order_index: Optional[int] = None

    @model_validator(mode="after")
    def reject_null_required(self) -> "TaskUpdate":
        for name in NON_NULLABLE_UPDATE_FIELDS:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


NON_NULLABLE_UPDATE_FIELDS = ("title", "priority", "is_completed", "order_index")


class TaskRead(BaseModel):
    id: UUID
    user_id: UUID
    category_id: Optional[UUID] = None
    title: str
    description: Optional[str] = None
    due_date_at: Optional[datetime] = None
    priority: TaskPriority
    is_completed: bool
    completed_at: Optional[datetime] = None
    order_index: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------

class TaskOrder(BaseModel):
    """Request body for PUT /tasks/order: every active task id, top first."""
    task_ids: List[UUID]


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------

class TaskSortField(str, Enum):
    ORDER_INDEX = "order_index"
    TITLE = "title"
    DUE_DATE_AT = "due_date_at"
    PRIORITY = "priority"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    COMPLETED_AT = "completed_at"
    URGENCY = "urgency"  # overdue, due date, priority, then manual order
