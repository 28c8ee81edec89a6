"""Chat-completion client over an OpenAI-compatible endpoint (OpenRouter by default)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

import openai

from arki_core.llm.errors import categorize
from arki_core.llm.messages import Message, SystemMessage, messages_to_dicts
from arki_core.llm.tools.response import ToolResponse
from arki_core.llm.tools.schema import ToolSchema
from config.logging import get_logger

if TYPE_CHECKING:
    from arki_core.config import ArkiSettings

logger = get_logger("arki.llm")


class CompletionClient(Protocol):
    """Anything the agent loop can ask for the next assistant turn."""

    async def complete(self, messages: list[Message], use_tools: bool = True) -> ToolResponse: ...


class ChatCompletionClient:
    """A chat-completion endpoint bound to one system prompt and one tool schema.

    The system prompt is prepended to every request unless the caller's
    sequence already starts with a system message. SDK failures are raised
    as ChatCompletionError subclasses (see arki_core.llm.errors).
    """

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        base_url: str | None = None,
        system_prompt: str = "",
        tools: list[ToolSchema] | None = None,
        max_tokens: int = 8192,
        timeout: float = 120.0,
        sdk_client: openai.AsyncOpenAI | None = None,
    ) -> None:
        self.model = model
        self.system_prompt = system_prompt
        self.tools = list(tools or [])
        self.max_tokens = max_tokens
        self._client = sdk_client or openai.AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
        )
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout

    @classmethod
    def from_settings(
        cls,
        settings: "ArkiSettings",
        system_prompt: str = "",
        tools: list[ToolSchema] | None = None,
    ) -> "ChatCompletionClient":
        return cls(
            api_key=settings.llm.api_key,
            base_url=settings.llm.base_url,
            model=settings.llm.model,
            system_prompt=system_prompt,
            tools=tools,
            max_tokens=settings.llm.max_tokens,
            timeout=settings.llm.timeout,
        )

    def bind(self, system_prompt: str, tools: list[ToolSchema] | None = None) -> "ChatCompletionClient":
        """Return a client for the same endpoint bound to another prompt and tool set."""
        return ChatCompletionClient(
            api_key=self._api_key,
            base_url=self._base_url,
            model=self.model,
            system_prompt=system_prompt,
            tools=tools,
            max_tokens=self.max_tokens,
            timeout=self._timeout,
            sdk_client=self._client,
        )

    def build_request_messages(self, messages: list[Message]) -> list[dict]:
        """Serialize messages, prepending the bound system prompt when needed."""
        payload = messages_to_dicts(messages)
        if self.system_prompt and not (messages and isinstance(messages[0], SystemMessage)):
            payload.insert(0, SystemMessage(self.system_prompt).to_dict())
        return payload

    async def complete(self, messages: list[Message], use_tools: bool = True) -> ToolResponse:
        """Request the next assistant turn.

        With ``use_tools=False`` the bound tool schema is left out of the
        request, so the model can only answer in text.

        Raises:
            ChatCompletionError: categorized by quota, rate limit, auth or availability.
        """
        kwargs: dict = {
            "model": self.model,
            "messages": self.build_request_messages(messages),
            "max_tokens": self.max_tokens,
        }
        tools = self.tools if use_tools else []
        if tools:
            kwargs["tools"] = [t.to_openai() for t in tools]
            kwargs["tool_choice"] = "auto"

        logger.debug(f"Requesting completion from {self.model} ({len(messages)} messages, {len(tools)} tools)")
        try:
            response = await self._client.chat.completions.create(**kwargs)
        except Exception as e:
            error = categorize(e)
            logger.error(f"Chat completion failed [{error.category}]: {e}")
            raise error from e

        result = ToolResponse.from_openai(response)
        logger.debug(
            f"Completion finished ({result.stop_reason}): "
            f"{len(result.tool_calls)} tool calls, {len(result.content or '')} chars"
        )
        return result

    async def close(self) -> None:
        await self._client.close()
