"""Tests for ArkiSettings loading from defaults, environment and arki.yaml."""

import yaml

from arki_core.config import ArkiSettings, get_settings, reset_settings


def _write_yaml(tmp_path, monkeypatch, data: dict):
    path = tmp_path / "arki.yaml"
    path.write_text(yaml.safe_dump(data))
    monkeypatch.setenv("ARKI_CONFIG", str(path))
    reset_settings()
    return path


def test_defaults():
    s = ArkiSettings()
    assert s.llm.base_url == "https://openrouter.ai/api/v1"
    assert s.agent.max_iterations == 3
    assert s.agent.openproject_max_iterations == 5
    assert s.agent.identifier_extension == 2
    assert s.agent.summary_iterations == 2
    assert s.agent.image_cache_size == 100
    assert s.discord.message_history_limit == 10
    assert s.discord.enabled_guilds == []


def test_validate_required_lists_missing(settings):
    assert settings.validate_required() == []
    assert ArkiSettings().validate_required() == [
        "Missing discord.bot_token",
        "Missing discord.client_id",
        "Missing llm.api_key",
        "Missing openproject.base_url",
        "Missing openproject.api_key",
    ]


def test_enabled_guilds_parsing():
    s = ArkiSettings(discord={"enabled_guild_ids": "1, 2,,3 "})
    assert s.discord.enabled_guilds == [1, 2, 3]


def test_env_nested_override(monkeypatch):
    monkeypatch.setenv("DISCORD__BOT_TOKEN", "env-token")
    monkeypatch.setenv("AGENT__MAX_ITERATIONS", "4")
    s = ArkiSettings()
    assert s.discord.bot_token == "env-token"
    assert s.agent.max_iterations == 4


def test_yaml_file(tmp_path, monkeypatch):
    _write_yaml(
        tmp_path,
        monkeypatch,
        {
            "llm": {"model": "openai/gpt-4o-mini"},
            "discord": {"guild_permissions": {"77": {"allowed_roles": ["Ops"]}}},
        },
    )
    s = get_settings()
    assert s.llm.model == "openai/gpt-4o-mini"
    assert s.discord.guild_permissions["77"].allowed_roles == ["Ops"]
    assert get_settings() is s


def test_env_wins_over_yaml(tmp_path, monkeypatch):
    _write_yaml(tmp_path, monkeypatch, {"discord": {"bot_token": "yaml-token", "client_id": "yaml-id"}})
    monkeypatch.setenv("DISCORD__BOT_TOKEN", "env-token")

    s = ArkiSettings()

    assert s.discord.bot_token == "env-token"
    assert s.discord.client_id == "yaml-id"


def test_invalid_guild_permissions():
    s = ArkiSettings(discord={"guild_permissions": {"1": {"allowed_users": ["5"]}, "2": {}}})
    assert s.invalid_guild_permissions() == ["2"]
