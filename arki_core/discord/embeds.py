"""Embeds for slash command replies."""

from __future__ import annotations

from datetime import datetime, timezone

import discord

BLURPLE = 0x5865F2
GREEN = 0x57F287
RED = 0xED4245

# kind -> (title prefix, color)
_STYLES = {
    "success": ("✅ ", GREEN),
    "error": ("❌ ", RED),
    "status": ("", BLURPLE),
}


def _embed(kind: str, title: str, description: str | None) -> discord.Embed:
    prefix, color = _STYLES[kind]
    return discord.Embed(title=f"{prefix}{title}", description=description, color=color)


def create_success_embed(title: str, description: str | None = None) -> discord.Embed:
    return _embed("success", title, description)


def create_error_embed(title: str, description: str | None = None) -> discord.Embed:
    return _embed("error", title, description)


def create_status_embed(title: str, fields: list[tuple[str, str, bool]] | None = None) -> discord.Embed:
    """Status embed from (name, value, inline) rows, stamped with the current time."""
    embed = _embed("status", title, None)
    embed.timestamp = datetime.now(timezone.utc)
    for name, value, inline in fields or []:
        embed.add_field(name=name, value=value, inline=inline)
    return embed
