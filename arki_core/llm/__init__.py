"""LLM boundary: typed messages, tool-call types and the chat-completion client."""

from arki_core.llm.client import ChatCompletionClient, CompletionClient
from arki_core.llm.errors import (
    AuthenticationFailedError,
    ChatCompletionError,
    QuotaExceededError,
    RateLimitedError,
    UpstreamUnavailableError,
)
from arki_core.llm.messages import (
    AssistantMessage,
    ContentPart,
    ContentPartType,
    Message,
    SystemMessage,
    ToolResultMessage,
    UserMessage,
)
from arki_core.llm.tools import ToolCall, ToolResponse, ToolSchema

__all__ = [
    "AssistantMessage",
    "AuthenticationFailedError",
    "ChatCompletionClient",
    "ChatCompletionError",
    "CompletionClient",
    "ContentPart",
    "ContentPartType",
    "Message",
    "QuotaExceededError",
    "RateLimitedError",
    "SystemMessage",
    "ToolCall",
    "ToolResponse",
    "ToolResultMessage",
    "ToolSchema",
    "UpstreamUnavailableError",
    "UserMessage",
]
