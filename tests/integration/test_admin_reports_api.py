"""Integration tests: admin and report endpoints."""

from __future__ import annotations

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import ADMIN_ID
from invitegate.errors import InviteValidationError
from invitegate.reports.service import create_report, list_reports
from invitegate.sessions.service import register_persistent_user


class TestAdminAPI:

    @pytest.mark.asyncio
    async def test_check_admin(self, client: AsyncClient):
        response = await client.get("/api/admin/check", params={"discordUserId": ADMIN_ID})
        assert response.status_code == 200
        assert response.json() == {"success": True, "isAdmin": True}

    @pytest.mark.asyncio
    async def test_check_regular_user(self, client: AsyncClient):
        response = await client.get("/api/admin/check", params={"discordUserId": "123"})
        assert response.json() == {"success": True, "isAdmin": False}

    @pytest.mark.asyncio
    async def test_check_without_id(self, client: AsyncClient):
        response = await client.get("/api/admin/check")
        assert response.json()["isAdmin"] is False

    @pytest.mark.asyncio
    async def test_users_requires_admin(self, client: AsyncClient):
        response = await client.get("/api/admin/users", params={"discordUserId": "123"})
        assert response.status_code == 403
        assert response.json() == {"success": False, "message": "Admin access required"}

    @pytest.mark.asyncio
    async def test_users_lists_persistent_users(self, client: AsyncClient, db_session: AsyncSession):
        await register_persistent_user(db_session, "123", "alice")
        await register_persistent_user(db_session, ADMIN_ID, "boss")

        response = await client.get("/api/admin/users", params={"discordUserId": ADMIN_ID})
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        users = {u["discordUserId"]: u for u in data["users"]}
        assert set(users) == {"123", ADMIN_ID}
        assert users["123"]["discordUsername"] == "alice"
        assert users["123"]["sessionCount"] == 0
        assert users["123"]["isAdmin"] is False
        assert users[ADMIN_ID]["isAdmin"] is True


class TestReports:

    @pytest.mark.asyncio
    async def test_create_and_list(self, client: AsyncClient, db_session: AsyncSession):
        await create_report(db_session, "123", "alice", "bug", "  The button is broken  ")

        response = await client.get("/api/reports")
        assert response.status_code == 200
        reports = response.json()["reports"]
        assert len(reports) == 1
        assert reports[0]["discordUserId"] == "123"
        assert reports[0]["content"] == "The button is broken"
        assert reports[0]["reportType"] == "bug"
        assert reports[0]["status"] == "open"
        assert "createdAt" in reports[0]

    @pytest.mark.asyncio
    async def test_unknown_type(self, db_session: AsyncSession):
        with pytest.raises(InviteValidationError, match="Unknown report type"):
            await create_report(db_session, "123", "alice", "spam", "hello")

    @pytest.mark.asyncio
    async def test_content_limits(self, db_session: AsyncSession):
        with pytest.raises(InviteValidationError):
            await create_report(db_session, "123", "alice", "general", "   ")
        with pytest.raises(InviteValidationError):
            await create_report(db_session, "123", "alice", "general", "x" * 1001)
        assert await list_reports(db_session) == []
