"""Embed builders for bot replies."""

from __future__ import annotations

from datetime import datetime, timezone

import discord

from invitegate.invites.store import CodeStats
from invitegate.reports.service import REPORT_TYPES

COLOR_SUCCESS = 0x00FF00
COLOR_INFO = 0x0099FF
COLOR_ERROR = 0xFF0000

# Discord rejects embed descriptions over 4096 characters
_MAX_DESCRIPTION = 4096


def _embed(title: str, description: str | None = None, color: int = COLOR_INFO) -> discord.Embed:
    return discord.Embed(
        title=title,
        description=description,
        color=color,
        timestamp=datetime.now(timezone.utc),
    )


def build_access_code_embed(code: str, site_name: str, site_url: str) -> discord.Embed:
    embed = _embed(f"{site_name} Access Code", f"Your invite code: **{code}**", COLOR_SUCCESS)
    embed.add_field(
        name="How to use:",
        value=f"Visit [{site_name}]({site_url}) and enter this code to gain access.",
        inline=False,
    )
    embed.add_field(
        name="Important:",
        value="This code is single-use only and expires when used.",
        inline=False,
    )
    return embed


def build_bulk_codes_embed(codes: list[str], requested: int) -> discord.Embed:
    if len(codes) == requested:
        title = f"Generated {requested} Invite Codes"
        color = COLOR_INFO
    else:
        title = f"Generated {len(codes)} of {requested} Invite Codes"
        color = COLOR_ERROR
    description = "\n".join(f"`{code}`" for code in codes) or "No codes were generated."
    embed = _embed(title, description[:_MAX_DESCRIPTION], color)
    if len(codes) != requested:
        embed.set_footer(text="Generation stopped early because of an error. Check the server logs.")
    return embed


def build_code_stats_embed(stats: CodeStats) -> discord.Embed:
    embed = _embed("Invite Code Statistics")
    embed.add_field(name="Total Codes", value=str(stats.total), inline=True)
    embed.add_field(name="Used Codes", value=str(stats.used), inline=True)
    embed.add_field(name="Available Codes", value=str(stats.available), inline=True)
    embed.add_field(name="Usage Rate", value=f"{stats.usage_percent}%", inline=True)
    return embed


def build_report_embed(report_type: str, username: str) -> discord.Embed:
    label = REPORT_TYPES.get(report_type, report_type)
    embed = _embed(
        "Report Submitted Successfully",
        f"Your {label} has been submitted to the admin team.",
        COLOR_SUCCESS,
    )
    embed.add_field(name="Report Type", value=label, inline=True)
    embed.add_field(name="Submitted By", value=username, inline=True)
    return embed


def build_error_embed(description: str, title: str = "Error") -> discord.Embed:
    return _embed(title, description, COLOR_ERROR)
