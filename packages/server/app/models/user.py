"""User model."""

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class User(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "users"

    email: str = Field(nullable=False, unique=True, index=True, max_length=255)
    password_hash: str = Field(nullable=False)  # bcrypt
    last_login_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    # {"filter_type": ..., "filter_value": ..., "show_completed": ...}
    last_active_view: Optional[dict] = Field(
        default=None, sa_type=sa.JSON().with_variant(JSONB(), "postgresql")
    )
