"""Integration tests: invite redemption and session endpoints."""

from __future__ import annotations

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from invitegate.invites.store import insert_invite_code, issue_invite_code
from invitegate.sessions.service import count_sessions


async def _seed(db: AsyncSession, *codes: str) -> None:
    for code in codes:
        await insert_invite_code(db, code)
    await db.commit()


class TestValidateInvite:
    """Integration: POST /api/validate-invite."""

    @pytest.mark.asyncio
    async def test_redeem_lowercase_code(self, client: AsyncClient, db_session: AsyncSession):
        await _seed(db_session, "ABCD-1234-WXYZ")

        response = await client.post(
            "/api/validate-invite",
            json={"code": "abcd-1234-wxyz"},
            headers={"User-Agent": "pytest-browser"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Invite code verified successfully!"
        assert isinstance(data["session"]["id"], int)
        assert "accessTime" in data["session"]
        assert data["session"]["discordUsername"] is None

    @pytest.mark.asyncio
    async def test_redeem_twice(self, client: AsyncClient, db_session: AsyncSession):
        await _seed(db_session, "ABCD-1234-WXYZ")

        first = await client.post("/api/validate-invite", json={"code": "ABCD-1234-WXYZ"})
        assert first.status_code == 200

        second = await client.post("/api/validate-invite", json={"code": "ABCD-1234-WXYZ"})
        assert second.status_code == 400
        assert second.json() == {"success": False, "message": "This invite code has already been used."}

    @pytest.mark.asyncio
    async def test_redeem_creates_one_session(self, client: AsyncClient, db_session: AsyncSession):
        await _seed(db_session, "ABCD-1234-WXYZ")
        before = await count_sessions(db_session)

        await client.post("/api/validate-invite", json={"code": "ABCD-1234-WXYZ"})
        assert await count_sessions(db_session) == before + 1

    @pytest.mark.asyncio
    async def test_discord_bound_code_returns_username(self, client: AsyncClient, db_session: AsyncSession):
        invite = await issue_invite_code(db_session, discord_user_id="123", discord_username="alice")

        response = await client.post("/api/validate-invite", json={"code": invite.code})
        assert response.status_code == 200
        assert response.json()["session"]["discordUsername"] == "alice"

    @pytest.mark.asyncio
    async def test_unknown_code(self, client: AsyncClient):
        response = await client.post("/api/validate-invite", json={"code": "NOPE-NOPE-NOPE"})
        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "message": "Invalid invite code. Please check and try again.",
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{}, {"code": ""}, {"code": "   "}])
    async def test_missing_code(self, client: AsyncClient, body: dict):
        response = await client.post("/api/validate-invite", json=body)
        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Invite code is required"}

    @pytest.mark.asyncio
    async def test_code_too_long(self, client: AsyncClient):
        response = await client.post("/api/validate-invite", json={"code": "A" * 17})
        assert response.status_code == 400
        assert response.json()["message"] == "Invite code too long"

    @pytest.mark.asyncio
    async def test_non_string_code_is_400(self, client: AsyncClient):
        response = await client.post("/api/validate-invite", json={"code": 12345})
        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Invite code must be a string"}

    @pytest.mark.asyncio
    async def test_unexpected_failure_is_generic(self, client: AsyncClient, monkeypatch):
        async def broken(*args, **kwargs):
            raise RuntimeError("database exploded")

        monkeypatch.setattr("invitegate.invites.router.redeem_invite_code", broken)
        response = await client.post("/api/validate-invite", json={"code": "ABCD-1234-WXYZ"})
        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "Internal server error"}


class TestSessionsAPI:
    """Integration: GET /api/sessions."""

    @pytest.mark.asyncio
    async def test_empty(self, client: AsyncClient):
        response = await client.get("/api/sessions")
        assert response.status_code == 200
        assert response.json() == {"sessions": []}

    @pytest.mark.asyncio
    async def test_lists_redeemed_sessions(self, client: AsyncClient, db_session: AsyncSession):
        invite = await issue_invite_code(db_session, discord_user_id="123", discord_username="alice")
        await client.post(
            "/api/validate-invite",
            json={"code": invite.code},
            headers={"User-Agent": "pytest-browser"},
        )

        response = await client.get("/api/sessions")
        sessions = response.json()["sessions"]
        assert len(sessions) == 1
        entry = sessions[0]
        assert entry["inviteCode"] == invite.code
        assert entry["inviteCodeId"] == invite.id
        assert entry["userAgent"] == "pytest-browser"
        assert entry["discordUserId"] == "123"
        assert entry["discordUsername"] == "alice"
        assert "accessTime" in entry
