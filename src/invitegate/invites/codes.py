"""Invite code generation.

Codes are three dash-separated groups of four characters (A-Z, 0-9), e.g.
``X7K2-93QT-MM0A``, generated server-side with a cryptographic random source.
"""

from __future__ import annotations

import re
import secrets
import string
from collections.abc import Callable

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from invitegate.db.models import InviteCode
from invitegate.errors import ExhaustedAttemptsError

logger = structlog.get_logger()

INVITE_CHARSET = string.ascii_uppercase + string.digits  # A-Z, 0-9
SEGMENT_LENGTH = 4
SEGMENT_COUNT = 3
SEPARATOR = "-"
DEFAULT_MAX_ATTEMPTS = 100

INVITE_CODE_PATTERN = re.compile(r"^[A-Z0-9]{4}-[A-Z0-9]{4}-[A-Z0-9]{4}$")


def generate_invite_code() -> str:
    """Generate a cryptographically random ``XXXX-XXXX-XXXX`` invite code."""
    return SEPARATOR.join(
        "".join(secrets.choice(INVITE_CHARSET) for _ in range(SEGMENT_LENGTH))
        for _ in range(SEGMENT_COUNT)
    )


def normalize_invite_code(code: str) -> str:
    """Normalize an invite code to uppercase for case-insensitive lookup."""
    return code.strip().upper()


async def invite_code_exists(db: AsyncSession, code: str) -> bool:
    result = await db.execute(select(InviteCode.id).where(InviteCode.code == code))
    return result.first() is not None


async def generate_unique_invite_code(
    db: AsyncSession,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    generator: Callable[[], str] = generate_invite_code,
) -> str:
    """Generate an invite code that doesn't already exist in the database."""
    for attempt in range(1, max_attempts + 1):
        code = generator()
        if not await invite_code_exists(db, code):
            return code
        logger.debug("invite_code_collision", attempt=attempt)
    msg = f"Failed to generate unique invite code after {max_attempts} attempts"
    raise ExhaustedAttemptsError(msg)
