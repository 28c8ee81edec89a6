"""Tool call and completion response dataclasses."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from arki_core.llm.messages import AssistantMessage, ToolResultMessage


@dataclass
class ToolCall:
    """A single tool invocation requested by the model.

    The arguments are kept exactly as the model produced them. They are
    parsed only when the call is dispatched, so a malformed payload surfaces
    as a tool error for this call instead of breaking the whole response.

    Attributes:
        id: Identifier unique within the assistant turn
        name: Name of the tool being called
        raw_arguments: JSON-encoded argument object, verbatim
    """

    id: str
    name: str
    raw_arguments: str = "{}"

    @classmethod
    def create(cls, id: str, name: str, arguments: dict[str, Any] | None = None) -> "ToolCall":
        """Build a call from an already-structured argument dict."""
        return cls(id=id, name=name, raw_arguments=json.dumps(arguments or {}))

    def parse_arguments(self) -> dict[str, Any]:
        """Decode raw_arguments into a dict.

        Raises:
            ValueError: If the payload is not valid JSON or not a JSON object.
        """
        raw = self.raw_arguments.strip() if self.raw_arguments else ""
        if not raw:
            return {}
        args = json.loads(raw)
        if not isinstance(args, dict):
            raise ValueError(f"expected a JSON object, got {type(args).__name__}")
        return args

    def to_openai_format(self) -> dict[str, Any]:
        """Convert to OpenAI tool_call format."""
        return {
            "id": self.id,
            "type": "function",
            "function": {
                "name": self.name,
                "arguments": self.raw_arguments,
            },
        }

    @classmethod
    def from_openai(cls, tc: dict) -> "ToolCall":
        """Create from an OpenAI tool_call dict."""
        func = tc.get("function", {})
        args = func.get("arguments", "{}")
        if not isinstance(args, str):
            args = json.dumps(args)
        return cls(id=tc.get("id", ""), name=func.get("name", ""), raw_arguments=args)

    def to_result_message(self, content: str) -> "ToolResultMessage":
        """Build the tool-role message answering this call."""
        from arki_core.llm.messages import ToolResultMessage

        return ToolResultMessage(tool_call_id=self.id, content=content, name=self.name)


@dataclass
class ToolResponse:
    """One chat completion: text, requested tool calls, or both.

    Attributes:
        content: Text content of the response (None if only tool calls)
        tool_calls: Tool calls in the order the model issued them
        raw_response: Original SDK response object for debugging
        stop_reason: finish_reason reported by the endpoint
    """

    content: str | None = None
    tool_calls: list[ToolCall] = field(default_factory=list)
    raw_response: Any = None
    stop_reason: str | None = None

    @property
    def has_tool_calls(self) -> bool:
        return len(self.tool_calls) > 0

    def to_assistant_message(self) -> "AssistantMessage":
        from arki_core.llm.messages import AssistantMessage

        return AssistantMessage(content=self.content, tool_calls=list(self.tool_calls))

    @classmethod
    def from_openai(cls, response: Any) -> "ToolResponse":
        """Create from an OpenAI ChatCompletion response."""
        if not response.choices:
            return cls(raw_response=response)

        choice = response.choices[0]
        message = choice.message

        tool_calls = []
        if message.tool_calls:
            for tc in message.tool_calls:
                tool_calls.append(
                    ToolCall(
                        id=tc.id,
                        name=tc.function.name,
                        raw_arguments=tc.function.arguments or "{}",
                    )
                )

        return cls(
            content=message.content,
            tool_calls=tool_calls,
            raw_response=response,
            stop_reason=choice.finish_reason,
        )
