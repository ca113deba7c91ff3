"""ORM models for invite codes, sessions, the cooldown ledger, persistent users and reports."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    false,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from invitegate.db.base import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Invite codes
# ---------------------------------------------------------------------------


class InviteCode(Base):
    """Single-use invite code. Unused until redeemed, then terminal."""

    __tablename__ = "invite_codes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    is_used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    discord_user_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    discord_username: Mapped[str | None] = mapped_column(String(64), nullable=True)

    sessions: Mapped[list[AccessSession]] = relationship("AccessSession", back_populates="invite_code")


# ---------------------------------------------------------------------------
# Sessions (append-only access log)
# ---------------------------------------------------------------------------


class AccessSession(Base):
    """Maps to the 'sessions' table. One row per successful redemption or OAuth login."""

    __tablename__ = "sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    invite_code_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("invite_codes.id"), nullable=True, index=True
    )
    access_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    discord_user_id: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)
    discord_username: Mapped[str | None] = mapped_column(String(64), nullable=True)

    invite_code: Mapped[InviteCode | None] = relationship("InviteCode", back_populates="sessions")


# ---------------------------------------------------------------------------
# Cooldown ledger
# ---------------------------------------------------------------------------


class DiscordRequest(Base):
    """Most recent code issuance per Discord user. Upserted, never appended."""

    __tablename__ = "discord_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    discord_user_id: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    invite_code: Mapped[str] = mapped_column(String(32), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )


# ---------------------------------------------------------------------------
# Persistent users
# ---------------------------------------------------------------------------


class PersistentUser(Base):
    """Discord identity that has redeemed a code at least once."""

    __tablename__ = "persistent_users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    discord_user_id: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    discord_username: Mapped[str] = mapped_column(String(64), nullable=False)
    first_access: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    last_access: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


class Report(Base):
    """Free-form feedback submitted through the bot."""

    __tablename__ = "reports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    discord_user_id: Mapped[str] = mapped_column(String(32), nullable=False)
    discord_username: Mapped[str] = mapped_column(String(64), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    report_type: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="open", server_default="open")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
