"""Text builders behind the slash commands.

- host_status_fields: host facts for /status
- describe_history: role/part summary of an assembled conversation for /debug-history
"""

from __future__ import annotations

import os
import platform
import time

from arki_core.llm.messages import (
    AssistantMessage,
    ContentPartType,
    Message,
    SystemMessage,
    ToolResultMessage,
    UserMessage,
)

ANCHOR_TEXT = (
    "📌 **This message now marks the beginning of the retrieved chat history.** "
    "Older messages will be ignored by Arki."
)

HISTORY_PREVIEW_LIMIT = 1600

_ROLE_EMOJI = {"user": "👤", "assistant": "🤖", "tool": "🛠️", "system": "⚙️"}

_PART_LABELS = {
    ContentPartType.TEXT: "📝 Text",
    ContentPartType.IMAGE_BASE64: "🖼️ Image (inline)",
    ContentPartType.IMAGE_URL: "🖼️ Image (url)",
    ContentPartType.AUDIO: "🎵 Audio",
}


def format_uptime(seconds: float) -> str:
    seconds = int(seconds)
    return f"{seconds // 3600}h {seconds % 3600 // 60}m {seconds % 60}s"


def host_status_fields(started_at: float, latency: float) -> list[tuple[str, str, bool]]:
    """(name, value, inline) rows for the /status embed."""
    return [
        ("OS Platform", platform.system() or "unknown", True),
        ("OS Release", platform.release() or "unknown", True),
        ("CPU Architecture", platform.machine() or "unknown", True),
        ("CPU Cores", str(os.cpu_count() or "unknown"), True),
        ("Python", platform.python_version(), True),
        ("Bot Uptime", format_uptime(time.monotonic() - started_at), True),
        ("Status", "Online", True),
        ("Ping", f"{latency * 1000:.0f}ms", True),
    ]


def _preview(text: str, limit: int) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")


def _role(message: Message) -> str:
    if isinstance(message, UserMessage):
        return "user"
    if isinstance(message, AssistantMessage):
        return "assistant"
    if isinstance(message, ToolResultMessage):
        return "tool"
    return "system"


def describe_history(messages: list[Message], limit: int = HISTORY_PREVIEW_LIMIT) -> str:
    """Readable dump of an assembled conversation, truncated near ``limit`` characters."""
    if not messages:
        return "No messages found in recent history."

    output = "**Message History (as sent to the model)**\n\n"
    for index, message in enumerate(messages):
        role = _role(message)
        output += f"**{index + 1}. {_ROLE_EMOJI[role]} {role.upper()}**"
        if isinstance(message, UserMessage) and message.name:
            output += f" ({message.name})"
        output += "\n"

        if isinstance(message, UserMessage) and message.parts:
            output += f"🎨 **Content** ({len(message.parts)} parts):\n"
            for n, part in enumerate(message.parts, 1):
                label = _PART_LABELS[part.type]
                if part.type == ContentPartType.TEXT:
                    output += f'  {n}. {label}: "{_preview(part.text or "", 100)}"\n'
                elif part.type == ContentPartType.IMAGE_URL:
                    output += f"  {n}. {label}: {part.url}\n"
                else:
                    output += f"  {n}. {label}: {part.media_type}\n"
        elif isinstance(message, (UserMessage, ToolResultMessage, SystemMessage)) or message.content:
            output += f"📝 **Text**: {_preview(message.content or '', 200)}\n"
        else:
            output += "_No content_\n"

        if isinstance(message, AssistantMessage) and message.tool_calls:
            names = ", ".join(tc.name for tc in message.tool_calls)
            output += f"🛠️ **Tool Calls**: {len(message.tool_calls)} ({names})\n"

        output += "\n"
        if len(output) > limit:
            remaining = len(messages) - index - 1
            if remaining:
                output += f"... ({remaining} more messages truncated)"
            break

    return output
