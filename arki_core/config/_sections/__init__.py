"""Config section models."""

from arki_core.config._sections.agent import AgentSettings
from arki_core.config._sections.bot import BotSettings
from arki_core.config._sections.discord import DiscordSettings, GuildPermissions
from arki_core.config._sections.llm import LLMSettings
from arki_core.config._sections.logging import LoggingSettings
from arki_core.config._sections.openproject import OpenProjectSettings

__all__ = [
    "AgentSettings",
    "BotSettings",
    "DiscordSettings",
    "GuildPermissions",
    "LLMSettings",
    "LoggingSettings",
    "OpenProjectSettings",
]
