"""Per-message pipeline: fetched history in, reply text plus tool provenance out."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from arki_core.agent_loop import AgentLoop
from arki_core.assembler import ConversationAssembler
from arki_core.ledger import ToolRound
from arki_core.llm.messages import ToolResultMessage
from arki_core.llm.tools.response import ToolCall
from config.logging import get_logger
from tools._registry import ToolRegistry

if TYPE_CHECKING:
    from arki_core.config import ArkiSettings
    from arki_core.llm.client import ChatCompletionClient

logger = get_logger("arki.responder")


@dataclass
class Reply:
    """Text to deliver and the invocations that produced it."""

    content: str
    rounds: list[ToolRound] = field(default_factory=list)
    iterations: int = 0

    @property
    def tool_calls(self) -> list[ToolCall]:
        return [call for r in self.rounds for call in r.calls]

    @property
    def tool_results(self) -> list[ToolResultMessage]:
        return [result for r in self.rounds for result in r.results]

    @property
    def used_tools(self) -> bool:
        return any(r.calls for r in self.rounds)


class Responder:
    """Runs the outer conversation loop for one triggering message."""

    def __init__(
        self,
        assembler: ConversationAssembler,
        registry: ToolRegistry,
        client: "ChatCompletionClient",
        settings: "ArkiSettings",
    ) -> None:
        self.assembler = assembler
        self.registry = registry
        self.client = client
        self.settings = settings

    async def respond(self, history: Sequence[Any], query: str, system_prompt: str) -> Reply:
        """Assemble ``history`` (newest first) plus ``query`` and run the loop.

        Raises:
            ChatCompletionError: The completion endpoint failed.
        """
        messages = await self.assembler.assemble(history, query)
        logger.debug(f"Assembled {len(messages)} messages from {len(history)} history entries")

        agent = self.settings.agent
        loop = AgentLoop(
            self.client.bind(system_prompt, self.registry.get_schemas()),
            self.registry,
            max_iterations=agent.max_iterations,
            extension=agent.identifier_extension,
            summary_iterations=agent.summary_iterations,
            name="conversation",
        )
        result = await loop.run_messages(messages, task=query)
        return Reply(
            content=result.content,
            rounds=result.rounds,
            iterations=result.iterations,
        )
