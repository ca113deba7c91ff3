"""Per-requester cooldown for invite code issuance.

Backed by the ``discord_requests`` ledger: one row per Discord user holding
the time of the most recent issuance. Every check is a fresh read.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from invitegate.admin.policy import AccessPolicy, Capability, Principal
from invitegate.db.models import DiscordRequest
from invitegate.errors import CooldownActiveError

logger = structlog.get_logger()

DEFAULT_COOLDOWN = timedelta(hours=1)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def describe_window(window: timedelta) -> str:
    """Human wording for the cooldown window ("hour", "24 hours", "30 minutes")."""
    seconds = int(window.total_seconds())
    if seconds % 3600 == 0:
        hours = seconds // 3600
        return "hour" if hours == 1 else f"{hours} hours"
    if seconds % 60 == 0:
        minutes = seconds // 60
        return "minute" if minutes == 1 else f"{minutes} minutes"
    return f"{seconds} seconds"


class CooldownGate:
    """Decides whether a requester may be issued a new invite code."""

    def __init__(
        self,
        window: timedelta = DEFAULT_COOLDOWN,
        clock: Callable[[], datetime] = _utcnow,
        policy: AccessPolicy | None = None,
    ) -> None:
        self.window = window
        self.clock = clock
        self.policy = policy or AccessPolicy()

    @property
    def message(self) -> str:
        return (
            f"You can only request access once per {describe_window(self.window)}. "
            "Please wait before requesting again."
        )

    async def is_active(self, db: AsyncSession, discord_user_id: str) -> bool:
        """True if this requester was issued a code within the window."""
        cutoff = self.clock() - self.window
        result = await db.execute(
            select(DiscordRequest.id).where(
                DiscordRequest.discord_user_id == discord_user_id,
                DiscordRequest.created_at > cutoff,
            )
        )
        return result.first() is not None

    async def check(self, db: AsyncSession, principal: Principal) -> None:
        """Raise CooldownActiveError unless the principal may be issued a code now."""
        if principal.discord_user_id is None:
            return
        if self.policy.allows(principal, Capability.BYPASS_COOLDOWN):
            return
        if await self.is_active(db, principal.discord_user_id):
            logger.info("cooldown_active", discord_user_id=principal.discord_user_id)
            raise CooldownActiveError(self.message)

    async def record(self, db: AsyncSession, discord_user_id: str, invite_code: str) -> DiscordRequest:
        """Upsert the ledger row with a fresh timestamp and the newly issued code."""
        now = self.clock()
        result = await db.execute(
            select(DiscordRequest).where(DiscordRequest.discord_user_id == discord_user_id)
        )
        entry = result.scalar_one_or_none()
        if entry is None:
            entry = DiscordRequest(discord_user_id=discord_user_id, invite_code=invite_code, created_at=now)
            db.add(entry)
            try:
                await db.flush()
            except IntegrityError:
                # Concurrent first request for the same user inserted the row
                await db.rollback()
                result = await db.execute(
                    select(DiscordRequest).where(DiscordRequest.discord_user_id == discord_user_id)
                )
                entry = result.scalar_one()
                entry.invite_code = invite_code
                entry.created_at = now
        else:
            entry.invite_code = invite_code
            entry.created_at = now
        await db.commit()
        return entry
