"""Tool-calling types shared by the client, the registry and the agent loop."""

from arki_core.llm.tools.response import ToolCall, ToolResponse
from arki_core.llm.tools.schema import ToolSchema

__all__ = ["ToolCall", "ToolResponse", "ToolSchema"]
