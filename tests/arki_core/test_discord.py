"""Tests for the Discord-facing helpers: permissions, prompt, anchors, history dump."""

from types import SimpleNamespace

from arki_core.discord.anchors import AnchorStore
from arki_core.discord.permissions import is_bot_mentioned, is_user_allowed
from arki_core.discord.prompt import build_system_prompt
from arki_core.discord.utils import describe_history, format_uptime
from arki_core.llm.messages import (
    AssistantMessage,
    ContentPart,
    ContentPartType,
    ToolResultMessage,
    UserMessage,
)
from arki_core.llm.tools.response import ToolCall
from config.bot import MULTIMODAL_NOTICE


def _message(user_id: int, guild_id: int | None = 1, roles=(), mentions=()):
    author = SimpleNamespace(id=user_id, roles=[SimpleNamespace(name=r) for r in roles])
    guild = SimpleNamespace(id=guild_id) if guild_id is not None else None
    return SimpleNamespace(author=author, guild=guild, mentions=[SimpleNamespace(id=m) for m in mentions])


class TestPermissions:
    def test_allowed_user_id(self, settings):
        assert is_user_allowed(_message(42), settings)

    def test_allowed_role(self, settings):
        assert is_user_allowed(_message(7, roles=["Guest", "Team"]), settings)

    def test_unlisted_user_denied(self, settings):
        assert not is_user_allowed(_message(7, roles=["Guest"]), settings)

    def test_unconfigured_guild_denied(self, settings):
        assert not is_user_allowed(_message(42, guild_id=2), settings)

    def test_direct_message_denied(self, settings):
        assert not is_user_allowed(_message(42, guild_id=None), settings)

    def test_mentions(self):
        assert is_bot_mentioned(_message(1, mentions=[5, 999]), 999)
        assert not is_bot_mentioned(_message(1, mentions=[5]), 999)


class TestSystemPrompt:
    def test_base_only(self):
        assert build_system_prompt("You are Arki.") == f"You are Arki.\n\n{MULTIMODAL_NOTICE}"

    def test_with_context(self):
        guild = SimpleNamespace(name="Acme", description="Builders", member_count=12)
        channel = SimpleNamespace(name="general", topic="Sprint talk")
        author = SimpleNamespace(name="alice")

        prompt = build_system_prompt("You are Arki.", guild, channel, author)

        assert 'Discord server: "Acme". The server description is: "Builders". The server has 12 members.' in prompt
        assert 'the channel: "general". The channel topic is: "Sprint talk".' in prompt
        assert prompt.endswith("You were mentioned by the user: alice.")

    def test_unnamed_channel(self):
        prompt = build_system_prompt("base", channel=SimpleNamespace(name=None, topic=None))
        assert '"Unknown Channel"' in prompt
        assert "topic" not in prompt


class TestAnchors:
    def test_set_get_clear(self):
        anchors = AnchorStore()
        assert anchors.get(10) is None

        anchors.set(10, 500)
        anchors.set(10, 600)
        assert anchors.get(10) == 600

        assert anchors.clear(10)
        assert not anchors.clear(10)
        assert anchors.get(10) is None


class TestDescribeHistory:
    def test_empty(self):
        assert describe_history([]) == "No messages found in recent history."

    def test_roles_and_parts(self):
        call = ToolCall.create("c1", "get_date_time")
        messages = [
            UserMessage(
                content="alice: look",
                parts=[
                    ContentPart.of_text("alice: look"),
                    ContentPart(type=ContentPartType.IMAGE_URL, url="https://cdn.example.com/a.png"),
                ],
                name="alice",
            ),
            AssistantMessage(content=None, tool_calls=[call]),
            ToolResultMessage(tool_call_id="c1", content="noon", name="get_date_time"),
            AssistantMessage(content="It is noon"),
        ]

        output = describe_history(messages)

        assert "**1. 👤 USER** (alice)" in output
        assert "🎨 **Content** (2 parts):" in output
        assert "🖼️ Image (url): https://cdn.example.com/a.png" in output
        assert "**2. 🤖 ASSISTANT**\n_No content_" in output
        assert "🛠️ **Tool Calls**: 1 (get_date_time)" in output
        assert "**3. 🛠️ TOOL**" in output
        assert "📝 **Text**: It is noon" in output

    def test_truncates(self):
        messages = [UserMessage(content="x" * 150) for _ in range(30)]
        output = describe_history(messages, limit=400)
        assert "more messages truncated)" in output
        assert len(output) < 800


def test_format_uptime():
    assert format_uptime(3725.9) == "1h 2m 5s"
