"""Root ArkiSettings model."""

from __future__ import annotations

from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from arki_core.config._loader import YamlSettingsSource
from arki_core.config._sections import (
    AgentSettings,
    BotSettings,
    DiscordSettings,
    LLMSettings,
    LoggingSettings,
    OpenProjectSettings,
)


class ArkiSettings(BaseSettings):
    model_config = {"env_nested_delimiter": "__", "case_sensitive": False, "extra": "ignore"}

    bot: BotSettings = Field(default_factory=BotSettings)
    discord: DiscordSettings = Field(default_factory=DiscordSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    openproject: OpenProjectSettings = Field(default_factory=OpenProjectSettings)
    agent: AgentSettings = Field(default_factory=AgentSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    def validate_required(self) -> list[str]:
        """Return a description of every missing required value (empty when valid)."""
        required = [
            ("discord.bot_token", self.discord.bot_token),
            ("discord.client_id", self.discord.client_id),
            ("llm.api_key", self.llm.api_key),
            ("openproject.base_url", self.openproject.base_url),
            ("openproject.api_key", self.openproject.api_key),
        ]
        return [f"Missing {name}" for name, value in required if not value]

    def invalid_guild_permissions(self) -> list[str]:
        """Guild ids whose permission entry allows nobody."""
        return [gid for gid, perms in self.discord.guild_permissions.items() if perms.is_empty]

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            YamlSettingsSource(settings_cls),
        )
