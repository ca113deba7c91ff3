"""Invite redemption.

States of a code: Unused -> Used (terminal). Codes never expire.

1. Normalize (strip + uppercase) and validate length
2. Look up; unknown codes are rejected
3. Already-used codes are rejected, with no retry semantics
4. Conditional UPDATE to used; zero affected rows is treated as already used
5. Session created and committed in the same transaction as the transition
6. Best-effort persistent-user registration for codes issued through Discord
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from invitegate.db.models import AccessSession
from invitegate.errors import InviteAlreadyUsedError, InviteNotFoundError, InviteValidationError
from invitegate.invites.codes import normalize_invite_code
from invitegate.invites.store import get_invite_code, mark_invite_code_used
from invitegate.sessions.service import create_session, register_persistent_user

logger = structlog.get_logger()

MAX_CODE_LENGTH = 16


def validate_submitted_code(raw_code: object, max_length: int = MAX_CODE_LENGTH) -> str:
    """Return the normalized code or raise InviteValidationError."""
    if raw_code is not None and not isinstance(raw_code, str):
        raise InviteValidationError("Invite code must be a string")
    code = normalize_invite_code(raw_code or "")
    if not code:
        raise InviteValidationError("Invite code is required")
    if len(code) > max_length:
        raise InviteValidationError("Invite code too long")
    return code


async def redeem_invite_code(
    db: AsyncSession,
    raw_code: object,
    user_agent: str | None = None,
    now: datetime | None = None,
    max_length: int = MAX_CODE_LENGTH,
) -> AccessSession:
    """Exchange an unused invite code for a new session."""
    code = validate_submitted_code(raw_code, max_length)

    invite = await get_invite_code(db, code)
    if invite is None:
        logger.info("invite_redeem_rejected", reason="not_found")
        raise InviteNotFoundError
    if invite.is_used:
        logger.info("invite_redeem_rejected", reason="already_used", invite_id=invite.id)
        raise InviteAlreadyUsedError

    invite_id = invite.id
    discord_user_id = invite.discord_user_id
    discord_username = invite.discord_username

    now = now or datetime.now(timezone.utc)
    if not await mark_invite_code_used(db, invite_id, now=now):
        await db.rollback()
        logger.info("invite_redeem_rejected", reason="lost_race", invite_id=invite_id)
        raise InviteAlreadyUsedError

    session = await create_session(
        db,
        invite_code_id=invite_id,
        user_agent=user_agent,
        discord_user_id=discord_user_id,
        discord_username=discord_username,
        now=now,
    )
    await db.commit()
    logger.info("invite_redeemed", invite_id=invite_id, session_id=session.id)
    # Detach so a rollback in the registration step cannot expire the returned row
    db.expunge(session)

    if discord_user_id and discord_username:
        await register_persistent_user(db, discord_user_id, discord_username)

    return session
