"""Unified configuration for Arki.

Usage:
    from arki_core.config import get_settings

    s = get_settings()
    s.llm.model            # "mistralai/mistral-7b-instruct"
    s.discord.bot_token    # "..."
"""

from __future__ import annotations

import logging

from arki_core.config._sections import GuildPermissions
from arki_core.config._settings import ArkiSettings

logger = logging.getLogger("arki.config")

_settings: ArkiSettings | None = None


def get_settings() -> ArkiSettings:
    """Return the singleton ArkiSettings instance (created on first call)."""
    global _settings
    if _settings is None:
        _settings = ArkiSettings()
        for guild_id in _settings.invalid_guild_permissions():
            logger.warning(
                f"Permissions for guild {guild_id} list neither users nor roles; nobody will be allowed there"
            )
    return _settings


def reset_settings() -> None:
    """Force re-creation of the settings singleton (useful for tests)."""
    global _settings
    _settings = None


__all__ = ["ArkiSettings", "GuildPermissions", "get_settings", "reset_settings"]
