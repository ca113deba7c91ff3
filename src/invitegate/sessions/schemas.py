"""Pydantic schemas for session endpoints."""

from __future__ import annotations

from datetime import datetime

from invitegate.schemas import CamelModel


class SessionResponse(CamelModel):
    id: int
    invite_code_id: int | None = None
    invite_code: str | None = None
    access_time: datetime
    user_agent: str | None = None
    discord_user_id: str | None = None
    discord_username: str | None = None


class SessionListResponse(CamelModel):
    sessions: list[SessionResponse]
