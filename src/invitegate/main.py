"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from invitegate.admin.router import router as admin_router
from invitegate.bot.client import InviteBot
from invitegate.config import get_settings
from invitegate.database import close_db, create_tables, get_session_factory, init_db
from invitegate.health.router import router as health_router
from invitegate.invites.router import router as invites_router
from invitegate.invites.store import seed_invite_codes
from invitegate.middleware import setup_middleware
from invitegate.oauth.router import router as oauth_router
from invitegate.redis_client import close_redis, init_redis
from invitegate.reports.router import router as reports_router
from invitegate.sessions.router import router as sessions_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    if settings.auto_create_tables:
        await create_tables()
    await init_redis(settings.redis_url)

    # Seed fixed invite codes into an empty table
    if settings.seed_invite_codes:
        try:
            async with get_session_factory()() as db:
                await seed_invite_codes(db, settings.seed_invite_codes)
        except SQLAlchemyError:
            logger.warning("Invite code seeding failed (tables may not exist yet)", exc_info=True)

    bot: InviteBot | None = None
    if settings.discord_bot_enabled and settings.discord_bot_token:
        bot = InviteBot.from_settings(settings, get_session_factory())
        bot.launch(settings.discord_bot_token)
    else:
        logger.info("Discord bot disabled")
    app.state.bot = bot

    yield

    if bot is not None:
        await bot.stop()
    app.state.bot = None

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Invite Gate API",
        description="Invite-code gated access with Discord issuance",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(invites_router)
    app.include_router(sessions_router)
    app.include_router(reports_router)
    app.include_router(admin_router)
    app.include_router(oauth_router)

    return app


app = create_app()
