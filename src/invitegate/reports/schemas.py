"""Pydantic schemas for report endpoints."""

from __future__ import annotations

from datetime import datetime

from invitegate.schemas import CamelModel


class ReportResponse(CamelModel):
    id: int
    discord_user_id: str
    discord_username: str
    content: str
    report_type: str
    status: str
    created_at: datetime


class ReportListResponse(CamelModel):
    reports: list[ReportResponse]
