"""Slash command handlers.

Handlers hold no Discord client state: they need an interaction, the
settings, a session factory, the cooldown gate and the access policy. Every
handler defers ephemerally first and answers through the followup webhook.
"""

from __future__ import annotations

import logging
from datetime import timedelta

import discord
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from invitegate.admin.policy import AccessPolicy, Capability, Principal
from invitegate.bot.embeds import (
    build_access_code_embed,
    build_bulk_codes_embed,
    build_code_stats_embed,
    build_error_embed,
    build_report_embed,
)
from invitegate.config import Settings
from invitegate.errors import AccessError, BulkGenerationError, CooldownActiveError, ExhaustedAttemptsError
from invitegate.invites.cooldown import CooldownGate
from invitegate.invites.store import generate_bulk, get_code_stats, issue_invite_code
from invitegate.reports.service import create_report

logger = logging.getLogger(__name__)

ADMIN_REQUIRED = "This command requires administrator permissions."
GENERIC_FAILURE = "An error occurred while processing your command."


class InviteCommands:
    """Business logic behind /request-access, /generate-bulk, /code-stats and /report."""

    def __init__(
        self,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
        cooldown: CooldownGate | None = None,
        policy: AccessPolicy | None = None,
    ) -> None:
        self.settings = settings
        self.session_factory = session_factory
        self.policy = policy or AccessPolicy.from_settings(settings)
        self.cooldown = cooldown or CooldownGate(
            window=timedelta(seconds=settings.cooldown_seconds),
            policy=self.policy,
        )

    # -- context checks --

    def principal_for(self, interaction: discord.Interaction) -> Principal:
        perms = interaction.permissions
        guild_admin = interaction.guild is not None and bool(perms.administrator or perms.manage_guild)
        return Principal(discord_user_id=str(interaction.user.id), guild_admin=guild_admin)

    def is_verify_channel(self, channel: object) -> bool:
        return getattr(channel, "name", None) in self.settings.discord_verify_channels

    async def _send(self, interaction: discord.Interaction, content: str | None = None, **kwargs: object) -> None:
        await interaction.followup.send(content, ephemeral=True, **kwargs)

    # -- /request-access --

    async def request_access(self, interaction: discord.Interaction) -> None:
        """Issue an invite code bound to the requester and deliver it by DM."""
        await interaction.response.defer(ephemeral=True, thinking=True)

        if not self.is_verify_channel(interaction.channel):
            channel = self.settings.discord_verify_channels[0] if self.settings.discord_verify_channels else "verify"
            await self._send(interaction, f"This command can only be used in the #{channel} channel.")
            return

        user_id = str(interaction.user.id)
        username = interaction.user.name
        principal = self.principal_for(interaction)

        try:
            async with self.session_factory() as db:
                await self.cooldown.check(db, principal)
                invite = await issue_invite_code(
                    db,
                    discord_user_id=user_id,
                    discord_username=username,
                    max_attempts=self.settings.code_max_attempts,
                )
                code = invite.code
                try:
                    await self.cooldown.record(db, user_id, code)
                except SQLAlchemyError:
                    # The code is already committed; deliver it without a ledger row
                    logger.exception("Cooldown ledger write failed for %s (code %s)", user_id, code)
                    await db.rollback()
        except CooldownActiveError as e:
            await self._send(interaction, e.message)
            return
        except (ExhaustedAttemptsError, SQLAlchemyError):
            logger.exception("Invite code issuance failed for %s", user_id)
            embed = build_error_embed("Failed to generate invite code. Please try again later.")
            await self._send(interaction, embed=embed)
            return

        logger.info("Invite code issued to %s (%s)", username, user_id)
        embed = build_access_code_embed(code, self.settings.site_name, self.settings.site_url)
        try:
            await interaction.user.send(embed=embed)
        except (discord.Forbidden, discord.HTTPException) as exc:
            # DMs disabled: hand the code over in the ephemeral reply instead
            logger.info("Access code DM to %s failed: %s", user_id, exc)
            await self._send(
                interaction,
                f"Your invite code: **{code}**\n\nI couldn't send a DM, so here's your code. Please save it!",
            )
            return
        await self._send(interaction, "Your invite code has been sent to your DMs!")

    # -- /generate-bulk --

    async def generate_bulk(self, interaction: discord.Interaction, count: int) -> None:
        """Admin: issue ``count`` unbound invite codes."""
        await interaction.response.defer(ephemeral=True, thinking=True)

        if not self.policy.allows(self.principal_for(interaction), Capability.MANAGE_CODES):
            await self._send(interaction, ADMIN_REQUIRED)
            return

        max_count = self.settings.bulk_max_count
        if not 1 <= count <= max_count:
            await self._send(interaction, f"Count must be between 1 and {max_count}.")
            return

        async with self.session_factory() as db:
            try:
                codes = await generate_bulk(
                    db,
                    count,
                    max_count=max_count,
                    max_attempts=self.settings.code_max_attempts,
                )
            except BulkGenerationError as e:
                await self._send(interaction, embed=build_bulk_codes_embed(e.codes, e.requested))
                return

        logger.info("Bulk generated %d invite codes for %s", len(codes), interaction.user.id)
        await self._send(interaction, embed=build_bulk_codes_embed(codes, count))

    # -- /code-stats --

    async def code_stats(self, interaction: discord.Interaction) -> None:
        """Admin: total / used / available counts and usage percentage."""
        await interaction.response.defer(ephemeral=True, thinking=True)

        if not self.policy.allows(self.principal_for(interaction), Capability.MANAGE_CODES):
            await self._send(interaction, ADMIN_REQUIRED)
            return

        async with self.session_factory() as db:
            stats = await get_code_stats(db)
        await self._send(interaction, embed=build_code_stats_embed(stats))

    # -- /report --

    async def report(self, interaction: discord.Interaction, report_type: str, content: str) -> None:
        """Append a report to the log."""
        await interaction.response.defer(ephemeral=True, thinking=True)

        username = interaction.user.name
        try:
            async with self.session_factory() as db:
                await create_report(db, str(interaction.user.id), username, report_type, content)
        except AccessError as e:
            await self._send(interaction, e.message)
            return
        except SQLAlchemyError:
            logger.exception("Report submission failed for %s", interaction.user.id)
            await self._send(
                interaction,
                embed=build_error_embed(
                    "There was an error submitting your report. Please try again later.",
                    title="Report Submission Failed",
                ),
            )
            return
        await self._send(interaction, embed=build_report_embed(report_type, username))

    # -- fallback --

    async def on_error(self, interaction: discord.Interaction, error: Exception) -> None:
        """Last-resort reply for any handler failure."""
        command = interaction.command.name if interaction.command else "unknown"
        logger.error("Command /%s failed", command, exc_info=error)
        embed = build_error_embed(GENERIC_FAILURE)
        if interaction.response.is_done():
            await interaction.followup.send(embed=embed, ephemeral=True)
        else:
            await interaction.response.send_message(embed=embed, ephemeral=True)
