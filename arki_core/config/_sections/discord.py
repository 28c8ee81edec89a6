"""Discord configuration models."""

from pydantic import BaseModel, Field


class GuildPermissions(BaseModel):
    """Who may talk to the bot in one guild."""

    allowed_users: list[str] = Field(default_factory=list)
    allowed_roles: list[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.allowed_users and not self.allowed_roles


class DiscordSettings(BaseModel):
    bot_token: str = ""
    client_id: str = ""
    enabled_guild_ids: str = ""
    guild_permissions: dict[str, GuildPermissions] = Field(default_factory=dict)
    message_history_limit: int = 10
    typing_interval: float = 9.0
    max_message_length: int = 1990

    @property
    def enabled_guilds(self) -> list[int]:
        """Guild ids for slash-command registration (empty means global)."""
        return [int(g.strip()) for g in self.enabled_guild_ids.split(",") if g.strip()]
