"""Category model."""

import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Category(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "categories"
    __table_args__ = (sa.UniqueConstraint("user_id", "name", name="uq_categories_user_name"),)

    user_id: uuid.UUID = Field(foreign_key="users.id", ondelete="CASCADE", nullable=False, index=True)
    name: str = Field(nullable=False, max_length=255)
