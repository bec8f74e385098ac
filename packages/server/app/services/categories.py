"""
Category service: per-user categories and the membership check tasks rely on.

Categories are a weak reference from tasks. Deleting one clears
``category_id`` on its tasks and never touches task order.
"""

from __future__ import annotations

import uuid
from typing import Iterable, Optional

import structlog
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import DuplicateCategoryName, NotFound
from app.models.base import utcnow
from app.models.category import Category
from app.models.task import Task
from taskpad_shared.schemas.categories import CategorySortField
from taskpad_shared.schemas.common import SortOrder

log = structlog.get_logger()


async def category_exists(
    session: AsyncSession, category_id: uuid.UUID, user_id: uuid.UUID
) -> bool:
    """True if ``category_id`` names a category owned by ``user_id``."""
    result = await session.execute(
        select(Category.id).where(Category.id == category_id, Category.user_id == user_id)
    )
    return result.first() is not None


async def get_category_or_404(
    session: AsyncSession, category_id: uuid.UUID, user_id: uuid.UUID
) -> Category:
    category = await session.get(Category, category_id)
    if not category or category.user_id != user_id:
        raise NotFound("Category not found or does not belong to user.")
    return category


async def _name_taken(
    session: AsyncSession,
    user_id: uuid.UUID,
    name: str,
    exclude_id: Optional[uuid.UUID] = None,
) -> bool:
    stmt = select(Category.id).where(Category.user_id == user_id, Category.name == name)
    if exclude_id is not None:
        stmt = stmt.where(Category.id != exclude_id)
    result = await session.execute(stmt)
    return result.first() is not None


async def list_categories(
    session: AsyncSession,
    user_id: uuid.UUID,
    *,
    query: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
    sort_by: CategorySortField = CategorySortField.NAME,
    sort_order: SortOrder = SortOrder.ASC,
) -> list[Category]:
    stmt = select(Category).where(Category.user_id == user_id)
    if query:
        stmt = stmt.where(Category.name.icontains(query, autoescape=True))
    column = getattr(Category, sort_by.value)
    stmt = stmt.order_by(column.desc() if sort_order == SortOrder.DESC else column.asc())
    result = await session.execute(stmt.offset(offset).limit(limit))
    return list(result.scalars().all())


async def create_category(session: AsyncSession, user_id: uuid.UUID, name: str) -> Category:
    if await _name_taken(session, user_id, name):
        raise DuplicateCategoryName()
    category = Category(user_id=user_id, name=name)
    session.add(category)
    await session.flush()
    log.info("category.created", category_id=str(category.id), user_id=str(user_id))
    return category


async def create_default_categories(
    session: AsyncSession, user_id: uuid.UUID, names: Iterable[str]
) -> list[Category]:
    categories = [Category(user_id=user_id, name=name) for name in dict.fromkeys(names)]
    session.add_all(categories)
    await session.flush()
    return categories


async def rename_category(
    session: AsyncSession, category_id: uuid.UUID, user_id: uuid.UUID, name: str
) -> Category:
    category = await get_category_or_404(session, category_id, user_id)
    if await _name_taken(session, user_id, name, exclude_id=category_id):
        raise DuplicateCategoryName("Category with this name already exists for your account.")
    category.name = name
    category.updated_at = utcnow()
    session.add(category)
    await session.flush()
    return category


async def delete_category(
    session: AsyncSession, category_id: uuid.UUID, user_id: uuid.UUID
) -> None:
    category = await get_category_or_404(session, category_id, user_id)

    # Mirrors ON DELETE SET NULL so the outcome doesn't depend on FK enforcement.
    result = await session.execute(
        update(Task)
        .where(Task.category_id == category_id, Task.user_id == user_id)
        .values(category_id=None)
        .execution_options(synchronize_session="fetch")
    )
    await session.delete(category)
    await session.flush()
    log.info(
        "category.deleted",
        category_id=str(category_id),
        user_id=str(user_id),
        tasks_uncategorized=result.rowcount,
    )
