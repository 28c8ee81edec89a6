"""Pytest configuration and fixtures for Arki tests."""

from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from arki_core.config import ArkiSettings, reset_settings
from arki_core.llm.tools.response import ToolCall, ToolResponse

BOT_USER_ID = 999


class ScriptedClient:
    """Completion client replaying a fixed list of responses.

    Once the script is used up the last response repeats. Every request's
    message list is recorded in ``requests`` and its ``use_tools`` flag in
    ``tool_flags``.
    """

    def __init__(self, responses: list[ToolResponse]):
        self.responses = list(responses)
        self.requests: list[list] = []
        self.tool_flags: list[bool] = []
        self.bound: list[tuple[str, list]] = []

    async def complete(self, messages, use_tools=True):
        self.requests.append(list(messages))
        self.tool_flags.append(use_tools)
        index = min(len(self.requests), len(self.responses)) - 1
        return self.responses[index]

    def bind(self, system_prompt, tools=None):
        self.bound.append((system_prompt, list(tools or [])))
        return self


def text_response(content: str) -> ToolResponse:
    return ToolResponse(content=content, stop_reason="stop")


def tool_response(*calls: ToolCall, content: str | None = None) -> ToolResponse:
    return ToolResponse(content=content, tool_calls=list(calls), stop_reason="tool_calls")


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch, tmp_path):
    """Keep tests away from any arki.yaml or LOG_LEVEL on the host."""
    monkeypatch.setenv("ARKI_CONFIG", str(tmp_path / "missing.yaml"))
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings() -> ArkiSettings:
    return ArkiSettings(
        discord={
            "bot_token": "token",
            "client_id": "123",
            "guild_permissions": {
                "1": {"allowed_users": ["42"], "allowed_roles": ["Team"]},
            },
        },
        llm={"api_key": "sk-test"},
        openproject={"base_url": "https://op.example.com", "api_key": "op-key"},
    )


@pytest.fixture
def scripted_client():
    """Factory: scripted_client([responses...]) -> ScriptedClient."""
    return ScriptedClient


@pytest.fixture
def responses():
    """Helpers for building scripted responses."""
    return SimpleNamespace(text=text_response, tools=tool_response)


def _make_message(
    id: int,
    content: str = "",
    author_id: int = 1,
    author_name: str = "alice",
    display_name: str | None = None,
    bot: bool = False,
    created_at: datetime | None = None,
    attachments=None,
    embeds=None,
    stickers=None,
    reactions=None,
    reference=None,
    poll=None,
):
    author = SimpleNamespace(
        id=author_id,
        name=author_name,
        display_name=display_name or author_name,
        bot=bot,
    )
    return SimpleNamespace(
        id=id,
        content=content,
        author=author,
        created_at=created_at or datetime(2026, 1, 1, 12, 0, id % 60, tzinfo=timezone.utc),
        attachments=attachments or [],
        embeds=embeds or [],
        stickers=stickers or [],
        reactions=reactions or [],
        reference=reference,
        poll=poll,
    )


@pytest.fixture
def make_message():
    """Factory for Discord-like message objects."""
    return _make_message


@pytest.fixture
def bot_message():
    """Factory for messages authored by the bot (author id BOT_USER_ID)."""

    def factory(id: int, content: str = "", **kwargs):
        return _make_message(id, content, author_id=BOT_USER_ID, author_name="Arki", bot=True, **kwargs)

    return factory


@pytest.fixture
def bot_user_id() -> int:
    return BOT_USER_ID
