"""Admin-gated read endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from invitegate.admin.policy import AccessPolicy, Capability, Principal
from invitegate.admin.schemas import AdminCheckResponse, AdminUserResponse, AdminUsersResponse
from invitegate.config import get_settings
from invitegate.database import get_session
from invitegate.schemas import ResultResponse
from invitegate.sessions.service import list_persistent_users

router = APIRouter(prefix="/api/admin", tags=["Admin"])


def get_access_policy() -> AccessPolicy:
    """FastAPI dependency: access policy built from settings."""
    return AccessPolicy.from_settings(get_settings())


@router.get("/check", response_model=AdminCheckResponse, response_model_by_alias=True)
async def admin_check(
    discord_user_id: str | None = Query(None, alias="discordUserId"),
    policy: AccessPolicy = Depends(get_access_policy),  # noqa: B008
) -> AdminCheckResponse:
    """Report whether the given Discord identity holds admin capabilities."""
    principal = Principal(discord_user_id=discord_user_id)
    return AdminCheckResponse(success=True, is_admin=policy.allows(principal, Capability.VIEW_ADMIN))


@router.get("/users", response_model=AdminUsersResponse, response_model_by_alias=True)
async def admin_users(
    discord_user_id: str | None = Query(None, alias="discordUserId"),
    policy: AccessPolicy = Depends(get_access_policy),  # noqa: B008
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> AdminUsersResponse | JSONResponse:
    """List persistent users with their session counts (admins only)."""
    if not policy.allows(Principal(discord_user_id=discord_user_id), Capability.VIEW_ADMIN):
        body = ResultResponse(success=False, message="Admin access required")
        return JSONResponse(status_code=403, content=body.model_dump(by_alias=True))

    summaries = await list_persistent_users(db)
    return AdminUsersResponse(
        success=True,
        users=[
            AdminUserResponse(
                discord_user_id=s.user.discord_user_id,
                discord_username=s.user.discord_username,
                first_access=s.user.first_access,
                last_access=s.user.last_access,
                session_count=s.session_count,
                is_admin=policy.is_admin(Principal(discord_user_id=s.user.discord_user_id)),
            )
            for s in summaries
        ],
    )
