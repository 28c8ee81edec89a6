"""The registry the outer conversation runs against.

Tools: get_date_time, openproject_agent
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from . import date_time
from ._base import ToolContext
from ._registry import ToolRegistry
from .openproject import make_openproject_agent_tool

if TYPE_CHECKING:
    from arki_core.config import ArkiSettings
    from arki_core.llm.client import ChatCompletionClient


def build_default_registry(
    client: "ChatCompletionClient",
    settings: "ArkiSettings",
    context: ToolContext | None = None,
) -> ToolRegistry:
    """get_date_time plus the OpenProject agent, which binds ``client`` to its own prompt."""
    return ToolRegistry(
        [date_time.TOOL, make_openproject_agent_tool(client.bind, settings)],
        context=context,
    )
