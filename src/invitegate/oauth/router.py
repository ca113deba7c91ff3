"""Discord OAuth2 login for returning users.

Only Discord identities that redeemed an invite code before may log in this
way. Every outcome is a redirect back to the dashboard; failures carry an
``error`` query parameter.
"""

from __future__ import annotations

import json
from urllib.parse import quote

import structlog
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from invitegate.config import get_settings
from invitegate.database import get_session
from invitegate.errors import NoPriorAccessError
from invitegate.oauth.discord import DiscordOAuthClient, OAuthError
from invitegate.sessions.service import login_with_discord

logger = structlog.get_logger()

router = APIRouter(prefix="/api/discord", tags=["Discord OAuth"])


def get_oauth_client() -> DiscordOAuthClient:
    """FastAPI dependency: OAuth client built from settings."""
    return DiscordOAuthClient.from_settings(get_settings())


def _redirect_uri(request: Request) -> str:
    settings = get_settings()
    return settings.discord_redirect_uri or str(request.url_for("discord_callback"))


def _error_redirect(reason: str) -> RedirectResponse:
    return RedirectResponse(url=f"/?error={reason}", status_code=302)


@router.get("/login")
async def discord_login(
    request: Request,
    oauth: DiscordOAuthClient = Depends(get_oauth_client),  # noqa: B008
) -> RedirectResponse:
    """Send the browser to Discord's consent screen."""
    try:
        url = oauth.authorize_url(_redirect_uri(request))
    except OAuthError as e:
        return _error_redirect(e.reason)
    return RedirectResponse(url=url, status_code=302)


@router.get("/callback", name="discord_callback")
async def discord_callback(
    request: Request,
    code: str | None = Query(None),
    error: str | None = Query(None),
    oauth: DiscordOAuthClient = Depends(get_oauth_client),  # noqa: B008
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> RedirectResponse:
    """Exchange the authorization code and open a session for a known identity."""
    if error:
        return _error_redirect(f"discord_{error}")
    if not code:
        return _error_redirect("direct_access_not_allowed")

    user_agent = request.headers.get("user-agent")
    try:
        token = await oauth.exchange_code(code, _redirect_uri(request))
        identity = await oauth.fetch_user(token)
        session = await login_with_discord(db, identity.id, identity.username, user_agent=user_agent)
    except OAuthError as e:
        return _error_redirect(e.reason)
    except NoPriorAccessError:
        logger.info("discord_login_rejected", reason="no_previous_access")
        return _error_redirect("no_previous_access")
    except Exception:
        logger.exception("discord_oauth_callback_failed")
        return _error_redirect("oauth_failed")

    session_data = {
        "sessionId": session.id,
        "accessTime": session.access_time.isoformat(),
        "inviteCode": "DISCORD_OAUTH",
        "discordUsername": identity.username,
        "discordUserId": identity.id,
        "userAgent": user_agent,
    }
    encoded = quote(json.dumps(session_data))
    return RedirectResponse(url=f"/dashboard?auth=success&session={encoded}", status_code=302)
