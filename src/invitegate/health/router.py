"""Liveness, readiness and version probes."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from invitegate.config import get_settings
from invitegate.database import get_session
from invitegate.redis_client import redis_status

router = APIRouter()


async def _database_status(db: AsyncSession) -> str:
    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as exc:
        return f"error: {exc}"
    return "ok"


def _bot_status(request: Request) -> str:
    bot = getattr(request.app.state, "bot", None)
    return bot.status_label if bot is not None else "disabled"


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    request: Request,
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict[str, object]:
    """Database and Redis gate readiness; the Discord bot is reported but optional."""
    checks = {
        "database": await _database_status(db),
        "redis": await redis_status(),
    }
    ready = all(status == "ok" for status in checks.values())
    checks["discord"] = _bot_status(request)
    return {"status": "ready" if ready else "degraded", "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    settings = get_settings()
    return {"version": settings.app_version, "environment": settings.environment}
