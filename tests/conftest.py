"""Shared test fixtures.

Every test that touches the database gets its own SQLite file, created from
the ORM metadata. Redis is never initialized, so rate limiting passes through
unless a test installs a fake client.
"""

from __future__ import annotations

import os

os.environ["INVITEGATE_ADMIN_DISCORD_USER_IDS"] = '["900000000000000001"]'
os.environ["INVITEGATE_DISCORD_BOT_ENABLED"] = "false"
os.environ["INVITEGATE_LOG_FORMAT"] = "console"

from collections.abc import AsyncGenerator  # noqa: E402
from pathlib import Path  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from invitegate.config import get_settings  # noqa: E402
from invitegate.database import close_db, create_tables, get_session_factory, init_db  # noqa: E402
from invitegate.main import create_app  # noqa: E402

get_settings.cache_clear()

ADMIN_ID = "900000000000000001"


@pytest_asyncio.fixture
async def database(tmp_path: Path) -> AsyncGenerator[None, None]:
    """Fresh SQLite database with all tables."""
    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'invitegate.db'}")
    await create_tables()
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """Get a direct database session for test setup and assertions."""
    async with get_session_factory()() as session:
        yield session


@pytest.fixture
def app() -> FastAPI:
    return create_app()


@pytest_asyncio.fixture
async def client(app: FastAPI, database: None) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client bound to a fresh app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def make_interaction(
    user_id: str = "100000000000000001",
    name: str = "tester",
    channel_name: str | None = "verify",
    administrator: bool = False,
    manage_guild: bool = False,
    in_guild: bool = True,
) -> MagicMock:
    """Fake discord.Interaction with awaitable response/followup methods."""
    interaction = MagicMock()
    interaction.user.id = int(user_id)
    interaction.user.name = name
    interaction.user.send = AsyncMock()
    interaction.channel.name = channel_name
    interaction.guild = MagicMock() if in_guild else None
    interaction.permissions.administrator = administrator
    interaction.permissions.manage_guild = manage_guild
    interaction.command.name = "request-access"
    interaction.response.defer = AsyncMock()
    interaction.response.send_message = AsyncMock()
    interaction.response.is_done = MagicMock(return_value=True)
    interaction.followup.send = AsyncMock()
    return interaction
