"""Pydantic schemas for invite endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from invitegate.schemas import CamelModel, ResultResponse


class ValidateInviteRequest(CamelModel):
    # Type, length and presence are checked by the redemption service so
    # failures share the {success, message} envelope.
    code: Any = None


class SessionSummary(CamelModel):
    id: int
    access_time: datetime
    discord_username: str | None = None


class ValidateInviteResponse(ResultResponse):
    session: SessionSummary | None = None
