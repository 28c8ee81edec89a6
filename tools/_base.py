"""Base classes for the Arki tool system.

This module defines the core types used throughout the tool system:
- ToolDef: Definition of a single tool
- ToolContext: Execution context passed to tool handlers
- ToolOutput: Structured tool result
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Union

from pydantic import BaseModel

if TYPE_CHECKING:
    from arki_core.llm.tools.schema import ToolSchema


class ToolError(Exception):
    """Base class for failures at the registry boundary."""


class ToolNotFoundError(ToolError):
    pass


class ToolArgumentsError(ToolError):
    """Arguments were not valid JSON or did not match the tool's model."""


@dataclass
class ToolContext:
    """Context passed to tool handlers during execution.

    Attributes:
        user_id: Discord id of the user the request originated from
        channel_id: Optional channel identifier
        extra: Collaborators a tool family needs (e.g. the OpenProject client)
    """

    user_id: str = "default"
    channel_id: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolOutput:
    """Result of a tool handler.

    Attributes:
        content: Text handed back to the model
        follow_up_expected: The result produced an identifier that a further
            tool call is expected to consume (grants the loop extra iterations)
    """

    content: str
    follow_up_expected: bool = False


ToolResult = Union[str, ToolOutput]

# Handlers receive the validated args model; they may be sync or async.
ToolHandler = Callable[[Any, ToolContext], Union[ToolResult, Awaitable[ToolResult]]]


@dataclass
class ToolDef:
    """Definition of a single tool.

    Attributes:
        name: Unique identifier for the tool
        description: Human-readable description for LLM consumption
        args_model: Pydantic model the raw arguments are validated into
        handler: Function that executes the tool
        emoji: Emoji shown in log lines and status messages
        label: Short display label (defaults to name if None)
    """

    name: str
    description: str
    args_model: type[BaseModel]
    handler: ToolHandler
    emoji: str = "🔧"
    label: str | None = None

    @property
    def parameters(self) -> dict[str, Any]:
        """JSON Schema for the arguments, derived from args_model."""
        return self.to_schema().parameters

    def to_schema(self) -> "ToolSchema":
        from arki_core.llm.tools.schema import ToolSchema

        return ToolSchema.from_args_model(self.name, self.description, self.args_model)

    def get_display_label(self) -> str:
        if self.label:
            return self.label
        return self.name.replace("_", " ").title()
