"""Report log: free-form feedback submitted through the Discord bot."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from invitegate.db.models import Report
from invitegate.errors import InviteValidationError

MAX_REPORT_LENGTH = 1000

REPORT_TYPES: dict[str, str] = {
    "bug": "Bug Report",
    "user": "User Report",
    "general": "General Issue",
    "suggestion": "Suggestion",
}


async def create_report(
    db: AsyncSession,
    discord_user_id: str,
    discord_username: str,
    report_type: str,
    content: str,
) -> Report:
    """Append a report. Validates type and content length."""
    if report_type not in REPORT_TYPES:
        raise InviteValidationError(f"Unknown report type: {report_type}")
    content = content.strip()
    if not content:
        raise InviteValidationError("Report content is required")
    if len(content) > MAX_REPORT_LENGTH:
        raise InviteValidationError(f"Report content must be at most {MAX_REPORT_LENGTH} characters")

    report = Report(
        discord_user_id=discord_user_id,
        discord_username=discord_username,
        content=content,
        report_type=report_type,
        status="open",
        created_at=datetime.now(timezone.utc),
    )
    db.add(report)
    await db.commit()
    return report


async def list_reports(db: AsyncSession, limit: int = 500) -> list[Report]:
    """Reports newest first."""
    result = await db.execute(select(Report).order_by(Report.created_at.desc(), Report.id.desc()).limit(limit))
    return list(result.scalars().all())
