"""
Category endpoint and service tests.
"""

from __future__ import annotations

import pytest

from app.core.errors import DuplicateCategoryName, NotFound
from app.services.categories import (
    category_exists,
    create_category,
    delete_category,
    rename_category,
)

from conftest import auth_headers


class TestCategoryService:
    @pytest.mark.asyncio
    async def test_category_exists_is_scoped(self, session, user, other_user):
        category = await create_category(session, user.id, "Work")
        await session.commit()
        assert await category_exists(session, category.id, user.id)
        assert not await category_exists(session, category.id, other_user.id)

    @pytest.mark.asyncio
    async def test_duplicate_names(self, session, user, other_user):
        await create_category(session, user.id, "Work")
        with pytest.raises(DuplicateCategoryName):
            await create_category(session, user.id, "Work")
        # Names are unique per user only.
        await create_category(session, other_user.id, "Work")

    @pytest.mark.asyncio
    async def test_rename(self, session, user, other_user):
        work = await create_category(session, user.id, "Work")
        await create_category(session, user.id, "Home")

        renamed = await rename_category(session, work.id, user.id, "Office")
        assert renamed.name == "Office"
        # Renaming to its own name is not a conflict.
        await rename_category(session, work.id, user.id, "Office")
        with pytest.raises(DuplicateCategoryName):
            await rename_category(session, work.id, user.id, "Home")
        with pytest.raises(NotFound):
            await rename_category(session, work.id, other_user.id, "Stolen")

    @pytest.mark.asyncio
    async def test_delete_of_foreign_category(self, session, user, other_user):
        category = await create_category(session, other_user.id, "Theirs")
        with pytest.raises(NotFound):
            await delete_category(session, category.id, user.id)


class TestCategoryEndpoints:
    @pytest.mark.asyncio
    async def test_crud(self, client, user):
        headers = auth_headers(user)

        resp = await client.post("/api/categories", json={"name": "Garden"}, headers=headers)
        assert resp.status_code == 201
        category = resp.json()
        assert category["user_id"] == str(user.id)

        resp = await client.post("/api/categories", json={"name": "Garden"}, headers=headers)
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "DUPLICATE_CATEGORY_NAME"

        resp = await client.patch(
            f"/api/categories/{category['id']}", json={"name": "Yard"}, headers=headers
        )
        assert resp.status_code == 200
        assert resp.json()["name"] == "Yard"

        resp = await client.get("/api/categories", params={"query": "ya"}, headers=headers)
        assert [c["name"] for c in resp.json()] == ["Yard"]

    @pytest.mark.asyncio
    async def test_list_sorting(self, client, user):
        headers = auth_headers(user)
        for name in ["beta", "alpha", "gamma"]:
            await client.post("/api/categories", json={"name": name}, headers=headers)

        resp = await client.get("/api/categories", headers=headers)
        assert [c["name"] for c in resp.json()] == ["alpha", "beta", "gamma"]
        resp = await client.get(
            "/api/categories", params={"sort_order": "desc", "limit": 2}, headers=headers
        )
        assert [c["name"] for c in resp.json()] == ["gamma", "beta"]

    @pytest.mark.asyncio
    async def test_delete_keeps_tasks_and_their_order(self, client, user):
        headers = auth_headers(user)
        category = (
            await client.post("/api/categories", json={"name": "Errands"}, headers=headers)
        ).json()
        await client.post("/api/tasks", json={"title": "plain"}, headers=headers)
        await client.post(
            "/api/tasks",
            json={"title": "filed", "category_id": category["id"]},
            headers=headers,
        )

        resp = await client.delete(f"/api/categories/{category['id']}", headers=headers)
        assert resp.status_code == 204

        active = (await client.get("/api/tasks/active", headers=headers)).json()
        assert [(t["title"], t["order_index"], t["category_id"]) for t in active] == [
            ("filed", 0, None),
            ("plain", 1, None),
        ]

        resp = await client.delete(f"/api/categories/{category['id']}", headers=headers)
        assert resp.status_code == 404
