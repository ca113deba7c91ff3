"""Session log endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from invitegate.database import get_session
from invitegate.sessions.schemas import SessionListResponse, SessionResponse
from invitegate.sessions.service import list_sessions

router = APIRouter(prefix="/api", tags=["Sessions"])


@router.get("/sessions", response_model=SessionListResponse, response_model_by_alias=True)
async def list_sessions_endpoint(
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> SessionListResponse:
    """All sessions, newest first, with the invite code each one redeemed."""
    rows = await list_sessions(db)
    return SessionListResponse(
        sessions=[
            SessionResponse(
                id=s.id,
                invite_code_id=s.invite_code_id,
                invite_code=code,
                access_time=s.access_time,
                user_agent=s.user_agent,
                discord_user_id=s.discord_user_id,
                discord_username=s.discord_username,
            )
            for s, code in rows
        ]
    )
