"""Pydantic schemas for admin endpoints."""

from __future__ import annotations

from datetime import datetime

from invitegate.schemas import CamelModel


class AdminCheckResponse(CamelModel):
    success: bool
    is_admin: bool


class AdminUserResponse(CamelModel):
    discord_user_id: str
    discord_username: str
    first_access: datetime
    last_access: datetime
    session_count: int
    is_admin: bool


class AdminUsersResponse(CamelModel):
    success: bool
    users: list[AdminUserResponse]
