"""Arki Discord integration package.

Modules:
- commands: ArkiCommands cog with all slash commands
- permissions: per-guild access checks
- anchors: in-memory per-channel anchor messages
- prompt: system prompt with guild/channel context
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from discord.ext import commands as discord_commands


def setup(bot: "discord_commands.Bot") -> None:
    """Register the ArkiCommands cog with the bot."""
    from .commands import ArkiCommands

    bot.add_cog(ArkiCommands(bot))


__all__ = ["setup"]
