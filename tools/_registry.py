"""Tool registry for the Arki tool system.

Registries are plain instances. The outer conversation owns one, and every
nested agent builds its own from scratch, so an agent can only ever reach the
tools it was constructed with.
"""

from __future__ import annotations

import inspect
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ValidationError

from arki_core.llm.errors import ChatCompletionError
from arki_core.llm.messages import ToolResultMessage
from arki_core.llm.tools.response import ToolCall
from arki_core.llm.tools.schema import ToolSchema
from config.logging import get_logger

from ._base import ToolArgumentsError, ToolContext, ToolDef, ToolNotFoundError, ToolOutput

logger = get_logger("arki.tools")


def _format_validation_error(exc: ValidationError) -> str:
    problems = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "arguments"
        problems.append(f"{loc}: {err['msg']}")
    return "; ".join(problems)


@dataclass
class ToolExecution:
    """Outcome of dispatching one tool call."""

    call: ToolCall
    result: ToolResultMessage
    follow_up_expected: bool = False

    @property
    def failed(self) -> bool:
        return self.result.is_error


class ToolRegistry:
    """Maps tool names to definitions and executes them.

    Usage:
        registry = ToolRegistry([date_time_tool], context=ToolContext(user_id="42"))
        schemas = registry.get_schemas()
        execution = await registry.dispatch(tool_call)
    """

    def __init__(self, tools: Iterable[ToolDef] = (), context: ToolContext | None = None) -> None:
        self._tools: dict[str, ToolDef] = {}
        self.context = context or ToolContext()
        for tool in tools:
            self.register(tool)

    def register(self, tool: ToolDef) -> None:
        """Register a tool definition.

        Raises:
            ValueError: If a tool with the same name is already registered
        """
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' already registered")
        self._tools[tool.name] = tool

    def get_tool(self, name: str) -> ToolDef | None:
        return self._tools.get(name)

    def get_tool_names(self) -> list[str]:
        return list(self._tools)

    def get_schemas(self) -> list[ToolSchema]:
        return [t.to_schema() for t in self._tools.values()]

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, tool_name: str) -> bool:
        return tool_name in self._tools

    def validate_args(self, tool: ToolDef, args: dict[str, Any]) -> BaseModel:
        """Deserialize raw arguments into the tool's args model.

        Raises:
            ToolArgumentsError: If the arguments don't match the model
        """
        try:
            return tool.args_model.model_validate(args)
        except ValidationError as e:
            raise ToolArgumentsError(f"Invalid arguments for tool {tool.name}: {_format_validation_error(e)}") from e

    async def execute(self, tool_name: str, arguments: dict[str, Any]) -> ToolOutput:
        """Validate arguments and run a tool by name.

        Raises:
            ToolNotFoundError: If no tool has that name
            ToolArgumentsError: If validation fails
            Exception: Whatever the handler raises
        """
        tool = self._tools.get(tool_name)
        if tool is None:
            raise ToolNotFoundError(f"Unknown tool '{tool_name}'")

        args = self.validate_args(tool, arguments)
        result = tool.handler(args, self.context)
        if inspect.isawaitable(result):
            result = await result
        if isinstance(result, ToolOutput):
            return result
        return ToolOutput(content=str(result))

    async def dispatch(self, tool_call: ToolCall) -> ToolExecution:
        """Execute a model-issued call and wrap the outcome as a tool message.

        Never raises: unknown tools, malformed JSON, invalid arguments and
        handler exceptions all become an "Error: ..." result for this call.
        A ChatCompletionError (from a nested agent) is reported by its
        user-facing message only.
        """
        tool = self._tools.get(tool_call.name)
        emoji = tool.emoji if tool else "❓"
        logger.info(f"{emoji} Executing tool {tool_call.name} (call {tool_call.id})")

        try:
            try:
                arguments = tool_call.parse_arguments()
            except ValueError as e:
                raise ToolArgumentsError(f"Invalid arguments for tool {tool_call.name}: {e}") from e
            output = await self.execute(tool_call.name, arguments)
        except ToolNotFoundError as e:
            logger.warning(str(e))
            return ToolExecution(tool_call, tool_call.to_result_message(f"Error: {e}"))
        except ToolArgumentsError as e:
            logger.warning(str(e))
            return ToolExecution(tool_call, tool_call.to_result_message(f"Error: {e}"))
        except ChatCompletionError as e:
            # Raw upstream text stays in the log
            logger.error(f"Tool {tool_call.name} failed on completion [{e.category}]: {e}")
            return ToolExecution(
                tool_call,
                tool_call.to_result_message(f"Error: Failed to execute tool {tool_call.name}: {e.user_message}"),
            )
        except Exception as e:
            logger.exception(f"Tool {tool_call.name} raised")
            return ToolExecution(
                tool_call,
                tool_call.to_result_message(f"Error: Failed to execute tool {tool_call.name}: {e}"),
            )

        logger.debug(f"Tool {tool_call.name} returned {len(output.content)} chars")
        return ToolExecution(
            tool_call,
            tool_call.to_result_message(output.content),
            follow_up_expected=output.follow_up_expected,
        )
