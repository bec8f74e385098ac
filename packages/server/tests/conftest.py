"""
Shared fixtures: in-memory SQLite database, Redis double, API client, users.
"""

from __future__ import annotations

import fnmatch

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, select

import app.models  # noqa: F401
from app.core import redis as redis_module
from app.core.auth import create_jwt, hash_password
from app.core.database import get_session
from app.main import app as fastapi_app
from app.models.task import Task
from app.models.user import User

PASSWORD = "correct-horse-battery"
# One bcrypt hash for every fixture user; hashing per test is slow.
PASSWORD_HASH = hash_password(PASSWORD)


class FakeRedis:
    """Dict-backed stand-in for the few redis.asyncio calls the app makes."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def setex(self, key, ttl, value):
        self.store[key] = str(value)
        self.ttls[key] = int(ttl)
        return True

    async def get(self, key):
        return self.store.get(key)

    async def getdel(self, key):
        self.ttls.pop(key, None)
        return self.store.pop(key, None)

    async def exists(self, *keys):
        return sum(1 for key in keys if key in self.store)

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    def keys_matching(self, pattern: str) -> list[str]:
        return [key for key in self.store if fnmatch.fnmatch(key, pattern)]

    async def aclose(self):
        pass


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


async def make_user(session: AsyncSession, email: str) -> User:
    user = User(email=email, password_hash=PASSWORD_HASH)
    session.add(user)
    await session.commit()
    return user


@pytest.fixture
async def user(session) -> User:
    return await make_user(session, "alice@example.com")


@pytest.fixture
async def other_user(session) -> User:
    return await make_user(session, "bob@example.com")


async def active_order(session: AsyncSession, user_id) -> list[tuple[str, int]]:
    """(title, order_index) of the user's active tasks, read straight from the table."""
    result = await session.execute(
        select(Task.title, Task.order_index)
        .where(Task.user_id == user_id, Task.is_completed.is_(False))
        .order_by(Task.order_index)
    )
    return [(row.title, row.order_index) for row in result]


# ---------------------------------------------------------------------------
# Redis + HTTP
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_redis(monkeypatch) -> FakeRedis:
    fake = FakeRedis()
    monkeypatch.setattr(redis_module, "_redis_client", fake)
    return fake


@pytest.fixture
async def client(session_factory, fake_redis):
    async def override_get_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    fastapi_app.dependency_overrides[get_session] = override_get_session
    async with AsyncClient(transport=ASGITransport(app=fastapi_app), base_url="http://test") as ac:
        yield ac
    fastapi_app.dependency_overrides.clear()


def auth_headers(user: User) -> dict[str, str]:
    token, _jti = create_jwt(user.id, user.email)
    return {"Authorization": f"Bearer {token}"}
