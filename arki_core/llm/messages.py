"""Typed conversation messages.

Everything between the Discord adapter and the chat-completion client speaks
list[Message]; the client serializes to the OpenAI wire format at its boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from arki_core.llm.tools.response import ToolCall


class ContentPartType(str, Enum):
    """Types of content parts in a multimodal message."""

    TEXT = "text"
    IMAGE_BASE64 = "image_base64"
    IMAGE_URL = "image_url"
    AUDIO = "audio"


@dataclass(frozen=True)
class ContentPart:
    """A single segment of a multimodal user message.

    Attributes:
        type: The kind of content.
        text: Text content (when type is TEXT).
        media_type: MIME type for images, e.g. "image/png"; format for audio, e.g. "mp3".
        data: Base64-encoded payload (IMAGE_BASE64 and AUDIO).
        url: HTTP URL (when type is IMAGE_URL).
    """

    type: ContentPartType
    text: str | None = None
    media_type: str | None = None
    data: str | None = None
    url: str | None = None

    @classmethod
    def of_text(cls, text: str) -> ContentPart:
        return cls(type=ContentPartType.TEXT, text=text)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to an OpenAI content part."""
        if self.type == ContentPartType.TEXT:
            return {"type": "text", "text": self.text or ""}
        elif self.type == ContentPartType.IMAGE_BASE64:
            data_url = f"data:{self.media_type or 'image/png'};base64,{self.data or ''}"
            return {"type": "image_url", "image_url": {"url": data_url}}
        elif self.type == ContentPartType.IMAGE_URL:
            return {"type": "image_url", "image_url": {"url": self.url or ""}}
        elif self.type == ContentPartType.AUDIO:
            return {
                "type": "input_audio",
                "input_audio": {"data": self.data or "", "format": self.media_type or "mp3"},
            }
        return {"type": "text", "text": ""}

    def placeholder(self) -> str:
        """Text stand-in used where only plain text is accepted."""
        if self.type == ContentPartType.TEXT:
            return self.text or ""
        if self.type == ContentPartType.IMAGE_URL:
            return f"[Image: {(self.url or '')[:50]}...]"
        if self.type == ContentPartType.IMAGE_BASE64:
            return f"[Image: {self.media_type or 'image'}]"
        return "[Audio]"


@dataclass
class SystemMessage:
    """A system-level instruction message."""

    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": "system", "content": self.content}


@dataclass
class UserMessage:
    """A user-sent message, optionally multimodal.

    For plain text, set content and leave parts empty. When parts is
    non-empty it is what gets sent; content is then only a text summary.

    Attributes:
        content: Text content of the message.
        parts: Ordered content segments.
        name: Optional speaker label (restricted to [a-zA-Z0-9_-], max 64).
    """

    content: str
    parts: list[ContentPart] = field(default_factory=list)
    name: str | None = None

    @property
    def is_multimodal(self) -> bool:
        return any(p.type != ContentPartType.TEXT for p in self.parts)

    @property
    def text(self) -> str:
        """Extract text from parts, or return content if no parts."""
        if not self.parts:
            return self.content
        text_parts = [p.text for p in self.parts if p.type == ContentPartType.TEXT and p.text]
        return " ".join(text_parts) if text_parts else self.content

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"role": "user"}
        if self.parts:
            result["content"] = [p.to_dict() for p in self.parts]
        else:
            result["content"] = self.content
        if self.name:
            result["name"] = self.name
        return result


@dataclass
class AssistantMessage:
    """An assistant turn: text, tool requests, or both.

    Attributes:
        content: Text content (None on a pure tool-request turn).
        tool_calls: Tool calls made by the assistant.
    """

    content: str | None = None
    tool_calls: list[ToolCall] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "role": "assistant",
            "content": self.content,
        }
        if self.tool_calls:
            result["tool_calls"] = [tc.to_openai_format() for tc in self.tool_calls]
        return result


@dataclass
class ToolResultMessage:
    """The result of executing one tool call.

    Attributes:
        tool_call_id: The ID of the tool call this is responding to.
        content: The tool's output text (an "Error..." line on failure).
        name: Name of the tool that produced it.
    """

    tool_call_id: str
    content: str
    name: str = ""

    @property
    def is_error(self) -> bool:
        return self.content.startswith("Error")

    def to_dict(self) -> dict[str, str]:
        result = {
            "role": "tool",
            "tool_call_id": self.tool_call_id,
            "content": self.content,
        }
        if self.name:
            result["name"] = self.name
        return result


# Union type for all message types
Message = SystemMessage | UserMessage | AssistantMessage | ToolResultMessage


def messages_to_dicts(messages: list[Message]) -> list[dict[str, Any]]:
    """Serialize a message sequence to OpenAI-format dicts."""
    return [m.to_dict() for m in messages]
