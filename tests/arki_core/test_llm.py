"""Tests for the chat-completion client, its error categories and response parsing."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import openai
import pytest

from arki_core.llm.client import ChatCompletionClient
from arki_core.llm.errors import (
    AuthenticationFailedError,
    ChatCompletionError,
    QuotaExceededError,
    RateLimitedError,
    UpstreamUnavailableError,
    categorize,
    error_for_status,
)
from arki_core.llm.messages import ContentPart, ContentPartType, SystemMessage, UserMessage
from arki_core.llm.tools.response import ToolCall, ToolResponse
from arki_core.llm.tools.schema import ToolSchema

REQUEST = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")
CLOCK = ToolSchema("get_date_time", "Current time", {"type": "object", "properties": {}})


def _completion(content=None, tool_calls=None, finish_reason="stop"):
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(message=message, finish_reason=finish_reason)])


def _sdk(create):
    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)), close=AsyncMock())


def _client(create, **kwargs) -> ChatCompletionClient:
    return ChatCompletionClient(api_key="sk-test", model="test/model", sdk_client=_sdk(create), **kwargs)


# ============================================================================
# Error categories
# ============================================================================


class TestErrors:
    @pytest.mark.parametrize(
        "status,expected",
        [
            (401, AuthenticationFailedError),
            (402, QuotaExceededError),
            (429, RateLimitedError),
            (503, UpstreamUnavailableError),
            (400, ChatCompletionError),
        ],
    )
    def test_error_for_status(self, status, expected):
        error = error_for_status(status, "boom")
        assert type(error) is expected
        assert error.status_code == status

    def test_user_messages_hide_upstream_text(self):
        error = error_for_status(429, "upstream said: secret details")
        assert "secret" not in error.user_message
        assert error.user_message == "Sorry, I'm being rate limited. Please wait a moment and try again."

    def test_categorize_sdk_status_error(self):
        exc = openai.RateLimitError("slow down", response=httpx.Response(429, request=REQUEST), body=None)
        assert isinstance(categorize(exc), RateLimitedError)

    def test_categorize_connection_error(self):
        assert isinstance(categorize(openai.APIConnectionError(request=REQUEST)), UpstreamUnavailableError)

    def test_categorize_other(self):
        error = categorize(RuntimeError("weird"))
        assert type(error) is ChatCompletionError
        assert error.category == "generic"

    def test_categorize_passthrough(self):
        error = QuotaExceededError("402")
        assert categorize(error) is error


# ============================================================================
# Response parsing
# ============================================================================


class TestToolResponse:
    def test_text_only(self):
        response = ToolResponse.from_openai(_completion(content="hello"))
        assert response.content == "hello"
        assert not response.has_tool_calls
        assert response.stop_reason == "stop"

    def test_tool_calls_keep_raw_arguments(self):
        tc = SimpleNamespace(id="c1", function=SimpleNamespace(name="get_date_time", arguments='{"format": "iso"'))
        response = ToolResponse.from_openai(_completion(tool_calls=[tc], finish_reason="tool_calls"))

        assert response.tool_calls == [ToolCall(id="c1", name="get_date_time", raw_arguments='{"format": "iso"')]
        with pytest.raises(ValueError):
            response.tool_calls[0].parse_arguments()

    def test_no_choices(self):
        response = ToolResponse.from_openai(SimpleNamespace(choices=[]))
        assert response.content is None
        assert response.tool_calls == []


# ============================================================================
# Client
# ============================================================================


class TestClient:
    def test_system_prompt_prepended(self):
        client = _client(AsyncMock(), system_prompt="You are Arki.")
        payload = client.build_request_messages([UserMessage(content="hi")])
        assert payload == [
            {"role": "system", "content": "You are Arki."},
            {"role": "user", "content": "hi"},
        ]

    def test_existing_system_message_kept(self):
        client = _client(AsyncMock(), system_prompt="You are Arki.")
        payload = client.build_request_messages([SystemMessage("Override"), UserMessage(content="hi")])
        assert [m["content"] for m in payload] == ["Override", "hi"]

    def test_multimodal_user_message(self):
        client = _client(AsyncMock())
        message = UserMessage(
            content="alice: look",
            parts=[
                ContentPart.of_text("alice: look"),
                ContentPart(type=ContentPartType.IMAGE_BASE64, media_type="image/png", data="AAAA"),
            ],
            name="alice",
        )
        [payload] = client.build_request_messages([message])
        assert payload["name"] == "alice"
        assert payload["content"][1] == {"type": "image_url", "image_url": {"url": "data:image/png;base64,AAAA"}}

    def test_bind_shares_sdk_client(self):
        create = AsyncMock()
        client = _client(create)
        bound = client.bind("Nested prompt", [CLOCK])

        assert bound is not client
        assert bound.system_prompt == "Nested prompt"
        assert bound.tools == [CLOCK]
        assert bound.model == client.model
        assert bound._client is client._client

    @pytest.mark.asyncio
    async def test_complete_sends_tools(self):
        create = AsyncMock(return_value=_completion(content="done"))
        client = _client(create, system_prompt="sys", tools=[CLOCK])

        response = await client.complete([UserMessage(content="hi")])

        assert response.content == "done"
        kwargs = create.await_args.kwargs
        assert kwargs["model"] == "test/model"
        assert kwargs["tool_choice"] == "auto"
        assert kwargs["tools"] == [CLOCK.to_openai()]
        assert kwargs["messages"][0] == {"role": "system", "content": "sys"}

    @pytest.mark.asyncio
    async def test_complete_without_tools(self):
        create = AsyncMock(return_value=_completion(content="done"))
        await _client(create).complete([UserMessage(content="hi")])
        assert "tools" not in create.await_args.kwargs

    @pytest.mark.asyncio
    async def test_complete_can_leave_bound_tools_out(self):
        create = AsyncMock(return_value=_completion(content="summary"))
        client = _client(create, tools=[CLOCK])

        await client.complete([UserMessage(content="hi")], use_tools=False)

        kwargs = create.await_args.kwargs
        assert "tools" not in kwargs
        assert "tool_choice" not in kwargs

    @pytest.mark.asyncio
    async def test_complete_categorizes_failures(self):
        exc = openai.AuthenticationError("bad key", response=httpx.Response(401, request=REQUEST), body=None)
        client = _client(AsyncMock(side_effect=exc))

        with pytest.raises(AuthenticationFailedError) as exc_info:
            await client.complete([UserMessage(content="hi")])

        assert exc_info.value.__cause__ is exc
