"""Discord client: slash command registration, presence rotation, lifecycle."""

from __future__ import annotations

import asyncio
import itertools
import logging

import discord
from discord import app_commands
from discord.ext import commands, tasks
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from invitegate.bot.commands import InviteCommands
from invitegate.config import Settings
from invitegate.reports.service import MAX_REPORT_LENGTH, REPORT_TYPES

logger = logging.getLogger(__name__)


def presence_activities(settings: Settings) -> list[discord.Activity]:
    return [
        discord.Activity(type=discord.ActivityType.watching, name=f"{settings.site_name} Access"),
        discord.Activity(type=discord.ActivityType.playing, name="invite codes generation"),
        discord.Activity(type=discord.ActivityType.listening, name="user requests"),
        discord.Activity(type=discord.ActivityType.watching, name="the verification process"),
    ]


class InviteBot(commands.Bot):
    """Gateway client exposing the invite commands.

    Constructed by the application lifespan; ``launch()`` runs the gateway
    connection as a background task on the current loop and ``stop()`` closes it.
    """

    def __init__(self, settings: Settings, handlers: InviteCommands) -> None:
        super().__init__(
            command_prefix="!",
            intents=discord.Intents.default(),
            description=f"{settings.site_name} invite bot",
        )
        self.settings = settings
        self.handlers = handlers
        self._activities = itertools.cycle(presence_activities(settings))
        self._runner: asyncio.Task[None] | None = None
        self._setup_commands()
        self.tree.error(self.handlers.on_error)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> InviteBot:
        return cls(settings, InviteCommands(settings, session_factory))

    def _setup_commands(self) -> None:
        """Register slash commands on the bot's command tree."""
        handlers = self.handlers
        max_bulk = self.settings.bulk_max_count

        @self.tree.command(name="request-access", description="Request an invite code")
        async def request_access_command(interaction: discord.Interaction) -> None:
            await handlers.request_access(interaction)

        async def generate_bulk_command(interaction: discord.Interaction, count: int) -> None:
            await handlers.generate_bulk(interaction, count)

        # The upper bound comes from settings, so the range is attached at runtime
        generate_bulk_command.__annotations__["count"] = app_commands.Range[int, 1, max_bulk]
        self.tree.command(name="generate-bulk", description="Generate multiple invite codes (admin only)")(
            app_commands.describe(count=f"Number of codes to generate (1-{max_bulk})")(generate_bulk_command)
        )

        @self.tree.command(name="code-stats", description="View invite code statistics (admin only)")
        async def code_stats_command(interaction: discord.Interaction) -> None:
            await handlers.code_stats(interaction)

        @self.tree.command(name="report", description="Submit a report to the admin team")
        @app_commands.rename(report_type="type")
        @app_commands.describe(report_type="Type of report", content="Report content")
        @app_commands.choices(
            report_type=[app_commands.Choice(name=label, value=value) for value, label in REPORT_TYPES.items()]
        )
        async def report_command(
            interaction: discord.Interaction,
            report_type: app_commands.Choice[str],
            content: app_commands.Range[str, 1, MAX_REPORT_LENGTH],
        ) -> None:
            await handlers.report(interaction, report_type.value, content)

    async def setup_hook(self) -> None:
        """Called before the gateway connects. Syncs slash commands."""
        if self.settings.discord_guild_id:
            guild = discord.Object(id=int(self.settings.discord_guild_id))
            self.tree.copy_global_to(guild=guild)
            await self.tree.sync(guild=guild)
            logger.info("discord_commands_synced guild_id=%s", self.settings.discord_guild_id)
        else:
            await self.tree.sync()
            logger.info("discord_commands_synced globally")

        self.rotate_presence.change_interval(seconds=self.settings.presence_rotation_seconds)
        self.rotate_presence.start()

    async def on_ready(self) -> None:
        name = self.user.name if self.user else "unknown"
        logger.info("discord_bot_ready user=%s", name)

    @tasks.loop(seconds=30)
    async def rotate_presence(self) -> None:
        await self.change_presence(activity=next(self._activities))

    @rotate_presence.before_loop
    async def _before_rotate_presence(self) -> None:
        await self.wait_until_ready()

    # -- lifecycle --

    @property
    def status_label(self) -> str:
        if self.is_ready() and not self.is_closed():
            return "connected"
        if self._runner is not None and not self._runner.done():
            return "starting"
        return "stopped"

    def launch(self, token: str) -> None:
        """Start the gateway connection as a background task and return immediately."""

        async def _run() -> None:
            try:
                await self.start(token)
            except asyncio.CancelledError:
                logger.info("discord_bot_cancelled")
            except Exception:
                # start() raises login, gateway and plain network errors alike
                logger.exception("discord_bot_error")
            finally:
                if not self.is_closed():
                    await self.close()

        self._runner = asyncio.create_task(_run(), name="discord-bot")
        logger.info("discord_bot_started")

    async def stop(self) -> None:
        if self.rotate_presence.is_running():
            self.rotate_presence.cancel()
        if not self.is_closed():
            await self.close()
        if self._runner is not None and not self._runner.done():
            self._runner.cancel()
            try:
                await self._runner
            except asyncio.CancelledError:
                pass
        self._runner = None
        logger.info("discord_bot_stopped")
