"""Invite redemption endpoint."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from invitegate.config import get_settings
from invitegate.database import get_session
from invitegate.errors import AccessError
from invitegate.invites.redemption import redeem_invite_code
from invitegate.invites.schemas import SessionSummary, ValidateInviteRequest, ValidateInviteResponse

logger = structlog.get_logger()

router = APIRouter(prefix="/api", tags=["Invites"])


def _result(status_code: int, body: ValidateInviteResponse) -> JSONResponse:
    content = body.model_dump(mode="json", by_alias=True)
    if content["session"] is None:
        del content["session"]
    return JSONResponse(status_code=status_code, content=content)


@router.post("/validate-invite", response_model=ValidateInviteResponse)
async def validate_invite(
    body: ValidateInviteRequest,
    request: Request,
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> JSONResponse:
    """Redeem an invite code and return the new session."""
    settings = get_settings()
    try:
        session = await redeem_invite_code(
            db,
            body.code,
            user_agent=request.headers.get("user-agent"),
            max_length=settings.invite_code_max_length,
        )
    except AccessError as e:
        return _result(400, ValidateInviteResponse(success=False, message=e.message))
    except Exception:
        logger.exception("invite_validation_failed")
        return _result(500, ValidateInviteResponse(success=False, message="Internal server error"))

    return _result(
        200,
        ValidateInviteResponse(
            success=True,
            message="Invite code verified successfully!",
            session=SessionSummary(
                id=session.id,
                access_time=session.access_time,
                discord_username=session.discord_username,
            ),
        ),
    )
