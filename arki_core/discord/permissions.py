"""Who may talk to the bot."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from arki_core.config import ArkiSettings


def is_user_allowed(message: Any, settings: "ArkiSettings") -> bool:
    """Allowed user ids first, then allowed role names. Unconfigured guilds and DMs are denied."""
    guild, member = message.guild, message.author
    if guild is None or member is None:
        return False

    permissions = settings.discord.guild_permissions.get(str(guild.id))
    if permissions is None:
        return False

    if str(member.id) in permissions.allowed_users:
        return True

    if permissions.allowed_roles:
        role_names = {role.name for role in getattr(member, "roles", [])}
        if role_names.intersection(permissions.allowed_roles):
            return True

    return False


def is_bot_mentioned(message: Any, bot_user_id: int) -> bool:
    return any(user.id == bot_user_id for user in message.mentions)
