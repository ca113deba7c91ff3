"""Integration tests: Discord OAuth login for returning users."""

from __future__ import annotations

import json
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from fastapi import FastAPI
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from invitegate.oauth.discord import DiscordOAuthClient
from invitegate.oauth.router import get_oauth_client
from invitegate.sessions.service import count_sessions, register_persistent_user


def _discord_api(user_id: str = "123", username: str = "alice", token_status: int = 200) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/oauth2/token"):
            if token_status != 200:
                return httpx.Response(token_status, json={"error": "invalid_grant"})
            return httpx.Response(200, json={"access_token": "tok-123"})
        if request.url.path.endswith("/users/@me"):
            return httpx.Response(200, json={"id": user_id, "username": username})
        return httpx.Response(404)

    return httpx.MockTransport(handler)


def _use_oauth(app: FastAPI, transport: httpx.MockTransport | None = None, configured: bool = True) -> None:
    oauth = DiscordOAuthClient(
        client_id="client-id" if configured else "",
        client_secret="client-secret" if configured else "",
        api_base_url="https://discord.test/api",
        transport=transport,
    )
    app.dependency_overrides[get_oauth_client] = lambda: oauth


def _error_of(response: httpx.Response) -> str:
    return parse_qs(urlparse(response.headers["location"]).query)["error"][0]


class TestDiscordLogin:

    @pytest.mark.asyncio
    async def test_login_redirects_to_discord(self, app: FastAPI, client: AsyncClient):
        _use_oauth(app)
        response = await client.get("/api/discord/login", follow_redirects=False)
        assert response.status_code == 302
        location = urlparse(response.headers["location"])
        assert location.netloc == "discord.test"
        query = parse_qs(location.query)
        assert query["redirect_uri"] == ["http://test/api/discord/callback"]

    @pytest.mark.asyncio
    async def test_login_not_configured(self, app: FastAPI, client: AsyncClient):
        _use_oauth(app, configured=False)
        response = await client.get("/api/discord/login", follow_redirects=False)
        assert response.status_code == 302
        assert _error_of(response) == "oauth_not_configured"


class TestDiscordCallback:

    @pytest.mark.asyncio
    async def test_returning_user_gets_session(self, app: FastAPI, client: AsyncClient, db_session: AsyncSession):
        await register_persistent_user(db_session, "123", "alice")
        _use_oauth(app, _discord_api())

        response = await client.get("/api/discord/callback", params={"code": "auth-code"}, follow_redirects=False)
        assert response.status_code == 302
        location = urlparse(response.headers["location"])
        assert location.path == "/dashboard"
        query = parse_qs(location.query)
        assert query["auth"] == ["success"]
        session = json.loads(query["session"][0])
        assert session["discordUserId"] == "123"
        assert session["discordUsername"] == "alice"
        assert session["inviteCode"] == "DISCORD_OAUTH"
        assert await count_sessions(db_session) == 1

    @pytest.mark.asyncio
    async def test_unknown_user_is_rejected(self, app: FastAPI, client: AsyncClient, db_session: AsyncSession):
        _use_oauth(app, _discord_api(user_id="999"))

        response = await client.get("/api/discord/callback", params={"code": "auth-code"}, follow_redirects=False)
        assert _error_of(response) == "no_previous_access"
        assert await count_sessions(db_session) == 0

    @pytest.mark.asyncio
    async def test_missing_code(self, app: FastAPI, client: AsyncClient):
        _use_oauth(app, _discord_api())
        response = await client.get("/api/discord/callback", follow_redirects=False)
        assert _error_of(response) == "direct_access_not_allowed"

    @pytest.mark.asyncio
    async def test_discord_error_is_forwarded(self, app: FastAPI, client: AsyncClient):
        _use_oauth(app, _discord_api())
        response = await client.get(
            "/api/discord/callback", params={"error": "access_denied"}, follow_redirects=False
        )
        assert _error_of(response) == "discord_access_denied"

    @pytest.mark.asyncio
    async def test_token_exchange_failure(self, app: FastAPI, client: AsyncClient):
        _use_oauth(app, _discord_api(token_status=400))
        response = await client.get("/api/discord/callback", params={"code": "bad"}, follow_redirects=False)
        assert _error_of(response) == "token_exchange_failed"
