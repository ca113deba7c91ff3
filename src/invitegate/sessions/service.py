"""Session issuance and the persistent-user registry.

Sessions are an append-only access log: one row per successful redemption or
Discord OAuth login. Persistent users record Discord identities that have been
granted access before, so they can log in again without a new code.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from invitegate.db.models import AccessSession, InviteCode, PersistentUser
from invitegate.errors import NoPriorAccessError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PersistentUserSummary:
    user: PersistentUser
    session_count: int


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


async def create_session(
    db: AsyncSession,
    invite_code_id: int | None = None,
    user_agent: str | None = None,
    discord_user_id: str | None = None,
    discord_username: str | None = None,
    now: datetime | None = None,
) -> AccessSession:
    """Append a new session. No validation: callers decide whether it is warranted."""
    session = AccessSession(
        invite_code_id=invite_code_id,
        access_time=now or datetime.now(timezone.utc),
        user_agent=user_agent,
        discord_user_id=discord_user_id,
        discord_username=discord_username,
    )
    db.add(session)
    await db.flush()
    return session


async def list_sessions(db: AsyncSession, limit: int = 500) -> list[tuple[AccessSession, str | None]]:
    """Sessions newest first, each paired with the code string it redeemed (None for OAuth)."""
    result = await db.execute(
        select(AccessSession, InviteCode.code)
        .outerjoin(InviteCode, AccessSession.invite_code_id == InviteCode.id)
        .order_by(AccessSession.access_time.desc(), AccessSession.id.desc())
        .limit(limit)
    )
    return [(row[0], row[1]) for row in result.all()]


async def count_sessions(db: AsyncSession) -> int:
    result = await db.execute(select(func.count()).select_from(AccessSession))
    return result.scalar_one()


# ---------------------------------------------------------------------------
# Persistent users
# ---------------------------------------------------------------------------


async def get_persistent_user(db: AsyncSession, discord_user_id: str) -> PersistentUser | None:
    result = await db.execute(
        select(PersistentUser).where(PersistentUser.discord_user_id == discord_user_id)
    )
    return result.scalar_one_or_none()


async def upsert_persistent_user(
    db: AsyncSession,
    discord_user_id: str,
    discord_username: str,
    now: datetime | None = None,
) -> PersistentUser:
    """Create the registry entry or refresh its username and last access."""
    now = now or datetime.now(timezone.utc)
    user = await get_persistent_user(db, discord_user_id)
    if user is None:
        user = PersistentUser(
            discord_user_id=discord_user_id,
            discord_username=discord_username,
            first_access=now,
            last_access=now,
        )
        db.add(user)
    else:
        user.discord_username = discord_username
        user.last_access = now
    await db.flush()
    return user


async def register_persistent_user(
    db: AsyncSession,
    discord_user_id: str,
    discord_username: str,
) -> bool:
    """Best-effort upsert in its own transaction. Returns False (and logs) on failure."""
    try:
        await upsert_persistent_user(db, discord_user_id, discord_username)
        await db.commit()
    except IntegrityError:
        # Concurrent first redemption for the same identity already created the row
        await db.rollback()
        logger.info("Persistent user %s already registered", discord_user_id)
        return False
    except Exception:
        await db.rollback()
        logger.warning("Persistent user registration failed for %s", discord_user_id, exc_info=True)
        return False
    return True


async def list_persistent_users(db: AsyncSession) -> list[PersistentUserSummary]:
    """All persistent users with their session counts, most recently active first."""
    counts = (
        select(AccessSession.discord_user_id, func.count(AccessSession.id).label("session_count"))
        .where(AccessSession.discord_user_id.is_not(None))
        .group_by(AccessSession.discord_user_id)
        .subquery()
    )
    result = await db.execute(
        select(PersistentUser, func.coalesce(counts.c.session_count, 0))
        .outerjoin(counts, counts.c.discord_user_id == PersistentUser.discord_user_id)
        .order_by(PersistentUser.last_access.desc())
    )
    return [PersistentUserSummary(user=row[0], session_count=row[1]) for row in result.all()]


# ---------------------------------------------------------------------------
# Discord OAuth login
# ---------------------------------------------------------------------------


async def login_with_discord(
    db: AsyncSession,
    discord_user_id: str,
    discord_username: str,
    user_agent: str | None = None,
) -> AccessSession:
    """Issue a session for a returning Discord identity.

    Only identities that redeemed a code before may log in this way; anyone
    else gets NoPriorAccessError and must request a code.
    """
    user = await get_persistent_user(db, discord_user_id)
    if user is None:
        raise NoPriorAccessError

    now = datetime.now(timezone.utc)
    user.discord_username = discord_username
    user.last_access = now
    session = await create_session(
        db,
        invite_code_id=None,
        user_agent=user_agent,
        discord_user_id=discord_user_id,
        discord_username=discord_username,
        now=now,
    )
    await db.commit()
    logger.info("Discord login for %s (session=%d)", discord_user_id, session.id)
    return session
