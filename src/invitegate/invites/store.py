"""Invite store: persistence and state transitions for invite codes.

Rules:
- ``code`` is globally unique (DB constraint); the constraint is the race backstop
- Codes are stored uppercase and looked up after normalization
- The used-transition is a single conditional UPDATE, never read-then-write
- Issuance commits one code at a time so a collision never discards earlier codes
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from invitegate.db.models import InviteCode
from invitegate.errors import (
    BulkGenerationError,
    DuplicateCodeError,
    ExhaustedAttemptsError,
    InviteValidationError,
)
from invitegate.invites.codes import (
    DEFAULT_MAX_ATTEMPTS,
    generate_invite_code,
    generate_unique_invite_code,
    normalize_invite_code,
)

logger = structlog.get_logger()

MAX_BULK_COUNT = 50


@dataclass(frozen=True)
class CodeStats:
    total: int
    used: int
    available: int

    @property
    def usage_percent(self) -> float:
        if self.total == 0:
            return 0.0
        return round(self.used / self.total * 100, 1)


# ---------------------------------------------------------------------------
# Lookup / insert / transition
# ---------------------------------------------------------------------------


async def get_invite_code(db: AsyncSession, code: str) -> InviteCode | None:
    """Fetch an invite code by its string (case-insensitive)."""
    result = await db.execute(select(InviteCode).where(InviteCode.code == normalize_invite_code(code)))
    return result.scalar_one_or_none()


async def insert_invite_code(
    db: AsyncSession,
    code: str,
    discord_user_id: str | None = None,
    discord_username: str | None = None,
) -> InviteCode:
    """Insert a new unused invite code.

    Raises DuplicateCodeError when the unique constraint fires. The session is
    rolled back in that case, so callers must not hold uncommitted work in it.
    """
    invite = InviteCode(
        code=normalize_invite_code(code),
        is_used=False,
        discord_user_id=discord_user_id,
        discord_username=discord_username,
        created_at=datetime.now(timezone.utc),
    )
    db.add(invite)
    try:
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        raise DuplicateCodeError(invite.code) from exc
    return invite


async def mark_invite_code_used(
    db: AsyncSession,
    invite_id: int,
    now: datetime | None = None,
) -> bool:
    """Atomically flip an invite code to used.

    Returns False when no row was updated, i.e. the code was already used
    (possibly by a concurrent redemption that won the race).
    """
    result = await db.execute(
        update(InviteCode)
        .where(InviteCode.id == invite_id, InviteCode.is_used.is_(False))
        .values(is_used=True, used_at=now or datetime.now(timezone.utc))
    )
    return result.rowcount == 1


# ---------------------------------------------------------------------------
# Issuance
# ---------------------------------------------------------------------------


async def issue_invite_code(
    db: AsyncSession,
    discord_user_id: str | None = None,
    discord_username: str | None = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    generator: Callable[[], str] = generate_invite_code,
) -> InviteCode:
    """Generate, insert and commit a unique invite code.

    A collision detected only at insert time (another writer took the code
    between the existence check and the insert) is retried within the same
    attempt budget.
    """
    for attempt in range(1, max_attempts + 1):
        code = await generate_unique_invite_code(db, max_attempts=max_attempts, generator=generator)
        try:
            invite = await insert_invite_code(db, code, discord_user_id, discord_username)
        except DuplicateCodeError:
            logger.warning("invite_code_insert_collision", attempt=attempt)
            continue
        await db.commit()
        logger.info("invite_code_issued", invite_id=invite.id, discord_user_id=discord_user_id)
        return invite
    msg = f"Failed to insert unique invite code after {max_attempts} attempts"
    raise ExhaustedAttemptsError(msg)


async def generate_bulk(
    db: AsyncSession,
    count: int,
    max_count: int = MAX_BULK_COUNT,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    generator: Callable[[], str] = generate_invite_code,
) -> list[str]:
    """Issue ``count`` unbound invite codes.

    Raises BulkGenerationError carrying the codes committed before the failure.
    """
    if not 1 <= count <= max_count:
        raise InviteValidationError(f"Count must be between 1 and {max_count}")

    codes: list[str] = []
    for _ in range(count):
        try:
            invite = await issue_invite_code(db, max_attempts=max_attempts, generator=generator)
        except (ExhaustedAttemptsError, SQLAlchemyError) as exc:
            logger.error("bulk_generation_failed", generated=len(codes), requested=count, error=str(exc))
            raise BulkGenerationError(codes, count) from exc
        codes.append(invite.code)

    logger.info("bulk_generation_complete", count=len(codes))
    return codes


async def seed_invite_codes(db: AsyncSession, codes: list[str]) -> int:
    """Insert fixed codes when the table is empty. Returns the number inserted."""
    if not codes:
        return 0
    existing = await db.execute(select(func.count()).select_from(InviteCode))
    if existing.scalar_one() > 0:
        return 0

    inserted = 0
    for code in codes:
        try:
            await insert_invite_code(db, code)
        except DuplicateCodeError:
            continue
        await db.commit()
        inserted += 1
    logger.info("invite_codes_seeded", count=inserted)
    return inserted


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


async def get_code_stats(db: AsyncSession) -> CodeStats:
    """Count total, used and available invite codes."""
    total_result = await db.execute(select(func.count()).select_from(InviteCode))
    used_result = await db.execute(
        select(func.count()).select_from(InviteCode).where(InviteCode.is_used.is_(True))
    )
    total = total_result.scalar_one()
    used = used_result.scalar_one()
    return CodeStats(total=total, used=used, available=total - used)
