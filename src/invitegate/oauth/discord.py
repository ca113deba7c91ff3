"""Discord OAuth2 client (authorization-code flow, ``identify`` scope)."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlencode

import httpx
import structlog

from invitegate.config import Settings

logger = structlog.get_logger()


class OAuthError(RuntimeError):
    """Base class for OAuth failures. ``reason`` is the redirect error key."""

    reason = "oauth_failed"


class OAuthNotConfiguredError(OAuthError):
    reason = "oauth_not_configured"


class TokenExchangeError(OAuthError):
    reason = "token_exchange_failed"


class UserFetchError(OAuthError):
    reason = "user_fetch_failed"


@dataclass(frozen=True)
class DiscordIdentity:
    id: str
    username: str


class DiscordOAuthClient:
    """Thin httpx wrapper around Discord's OAuth2 token and user endpoints."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        api_base_url: str = "https://discord.com/api",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.api_base_url = api_base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> DiscordOAuthClient:
        return cls(
            client_id=settings.discord_client_id,
            client_secret=settings.discord_client_secret,
            api_base_url=settings.discord_api_base_url,
        )

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def authorize_url(self, redirect_uri: str) -> str:
        """URL to send the browser to for the Discord consent screen."""
        if not self.configured:
            raise OAuthNotConfiguredError("Discord OAuth client id/secret not set")
        query = urlencode({
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": "identify",
        })
        return f"{self.api_base_url}/oauth2/authorize?{query}"

    async def exchange_code(self, code: str, redirect_uri: str) -> str:
        """Exchange an authorization code for an access token."""
        if not self.configured:
            raise OAuthNotConfiguredError("Discord OAuth client id/secret not set")
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    f"{self.api_base_url}/oauth2/token",
                    data={
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "grant_type": "authorization_code",
                        "code": code,
                        "redirect_uri": redirect_uri,
                    },
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
                response.raise_for_status()
                return str(response.json()["access_token"])
        except (httpx.HTTPError, KeyError, ValueError) as exc:
            logger.warning("discord_token_exchange_failed", error=str(exc))
            raise TokenExchangeError(str(exc)) from exc

    async def fetch_user(self, access_token: str) -> DiscordIdentity:
        """Fetch the identity behind an access token."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(
                    f"{self.api_base_url}/users/@me",
                    headers={"Authorization": f"Bearer {access_token}"},
                )
                response.raise_for_status()
                data = response.json()
                return DiscordIdentity(id=str(data["id"]), username=str(data["username"]))
        except (httpx.HTTPError, KeyError, ValueError) as exc:
            logger.warning("discord_user_fetch_failed", error=str(exc))
            raise UserFetchError(str(exc)) from exc
