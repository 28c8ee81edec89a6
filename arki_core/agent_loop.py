"""Bounded request / execute / re-prompt loop between a model and a tool registry.

One AgentLoop is configured once (client, registry, budget) and may be run
many times; every run gets its own AgentSession which is discarded when the
run ends.

    Idle -> Requesting -> Executing -> Requesting -> ... -> Responding -> Terminated

When the iteration budget is used up while the model is still asking for
tools, a summary request is appended as a user message and the model gets a
small number of extra requests to answer in plain text. Those requests carry
no tool schema, and any tool calls they still return are ignored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from arki_core.llm.client import CompletionClient
from arki_core.ledger import ToolRound
from arki_core.llm.messages import Message, ToolResultMessage, UserMessage
from arki_core.llm.tools.response import ToolCall, ToolResponse
from config.logging import get_logger
from tools._registry import ToolRegistry

logger = get_logger("arki.agent")

DEFAULT_SUMMARY_PROMPT = (
    "You've reached the maximum number of tool calls. Please summarize what you "
    "found and provide a final answer without calling any more tools."
)
EXHAUSTED_NOTICE = "Task completed after the maximum number of iterations."
EMPTY_RESPONSE_NOTICE = "I processed your request but have no response."


class AgentState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    EXECUTING = "executing"
    RESPONDING = "responding"
    TERMINATED = "terminated"


@dataclass
class AgentSession:
    """Transient state of one loop run."""

    task: str
    iteration_budget: int
    messages: list[Message] = field(default_factory=list)
    iteration_count: int = 0
    state: AgentState = AgentState.IDLE
    extended: bool = False
    rounds: list[ToolRound] = field(default_factory=list)


@dataclass
class AgentResult:
    """What a finished run hands back to its caller.

    Attributes:
        content: Final text, never empty
        iterations: Number of request cycles that executed or forced tools
        rounds: One ToolRound per executed iteration, in order
        budget_exhausted: The summary path was taken
    """

    content: str
    iterations: int
    rounds: list[ToolRound] = field(default_factory=list)
    budget_exhausted: bool = False

    @property
    def tool_calls(self) -> list[ToolCall]:
        return [call for r in self.rounds for call in r.calls]

    @property
    def tool_results(self) -> list[ToolResultMessage]:
        return [result for r in self.rounds for result in r.results]

    @property
    def tool_count(self) -> int:
        return len(self.tool_calls)


class AgentLoop:
    """Drives a CompletionClient against a ToolRegistry until it answers in text.

    Args:
        client: Bound completion client (system prompt + this registry's schema)
        registry: Tools the model may call
        max_iterations: Request/execute cycles allowed before forcing a summary
        extension: Extra cycles granted once when a tool signals a follow-up
        summary_iterations: Requests allowed after the summary prompt
        summary_prompt: User message appended when the budget runs out
        name: Tag used in log lines
    """

    def __init__(
        self,
        client: CompletionClient,
        registry: ToolRegistry,
        *,
        max_iterations: int = 5,
        extension: int = 2,
        summary_iterations: int = 2,
        summary_prompt: str = DEFAULT_SUMMARY_PROMPT,
        name: str = "agent",
    ) -> None:
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.client = client
        self.registry = registry
        self.max_iterations = max_iterations
        self.extension = extension
        self.summary_iterations = summary_iterations
        self.summary_prompt = summary_prompt
        self.name = name

    @staticmethod
    def task_message(task: str, context: str | None = None, preamble: str = "") -> UserMessage:
        """Seed message: the task, with optional context appended in the same message."""
        text = f"{preamble}{task}"
        if context:
            text += f"\n\nContext: {context}"
        return UserMessage(content=text)

    async def run(self, task: str, context: str | None = None, preamble: str = "") -> AgentResult:
        """Run the loop for a task described in one user message."""
        return await self.run_messages([self.task_message(task, context, preamble)], task=task)

    async def run_messages(self, messages: list[Message], task: str = "") -> AgentResult:
        """Run the loop over an existing conversation.

        Raises:
            ChatCompletionError: The completion endpoint could not be reached.
                Tool failures never propagate.
        """
        session = AgentSession(task=task, iteration_budget=self.max_iterations, messages=list(messages))

        while session.iteration_count < session.iteration_budget:
            response = await self._request(session)
            if not response.has_tool_calls:
                return self._respond(session, response)
            await self._execute(session, response)

        return await self._summarize(session)

    async def _request(self, session: AgentSession, use_tools: bool = True) -> ToolResponse:
        session.state = AgentState.REQUESTING
        logger.debug(
            f"[{self.name}] Requesting completion "
            f"(iteration {session.iteration_count + 1}/{session.iteration_budget})"
        )
        return await self.client.complete(session.messages, use_tools=use_tools)

    async def _execute(self, session: AgentSession, response: ToolResponse) -> None:
        """Run every requested call in issue order, then append request and results."""
        session.state = AgentState.EXECUTING
        session.iteration_count += 1
        logger.info(
            f"[{self.name}] Iteration {session.iteration_count}/{session.iteration_budget}: "
            f"{', '.join(tc.name for tc in response.tool_calls)}"
        )

        results: list[ToolResultMessage] = []
        follow_up = False
        for tool_call in response.tool_calls:
            execution = await self.registry.dispatch(tool_call)
            results.append(execution.result)
            follow_up = follow_up or execution.follow_up_expected

        session.messages.append(response.to_assistant_message())
        session.messages.extend(results)
        session.rounds.append(ToolRound(calls=list(response.tool_calls), results=results))

        if follow_up and not session.extended and self.extension > 0:
            session.extended = True
            session.iteration_budget += self.extension
            logger.info(
                f"[{self.name}] Tool produced an identifier for a follow-up call, "
                f"extending budget to {session.iteration_budget}"
            )

    def _respond(self, session: AgentSession, response: ToolResponse, exhausted: bool = False) -> AgentResult:
        session.state = AgentState.RESPONDING
        content = (response.content or "").strip() or EMPTY_RESPONSE_NOTICE
        return self._finish(session, content, exhausted)

    def _finish(self, session: AgentSession, content: str, exhausted: bool) -> AgentResult:
        session.state = AgentState.TERMINATED
        logger.info(
            f"[{self.name}] Finished after {session.iteration_count} iteration(s), "
            f"{sum(len(r.calls) for r in session.rounds)} tool call(s)"
        )
        return AgentResult(
            content=content,
            iterations=session.iteration_count,
            rounds=session.rounds,
            budget_exhausted=exhausted,
        )

    async def _summarize(self, session: AgentSession) -> AgentResult:
        """Budget used up while still calling tools: ask for a final answer.

        Summary requests are sent without tools. Tool calls the model returns
        anyway are never executed.
        """
        logger.info(f"[{self.name}] Iteration budget reached, requesting final summary")
        session.messages.append(UserMessage(content=self.summary_prompt))

        for _ in range(self.summary_iterations):
            response = await self._request(session, use_tools=False)
            session.iteration_count += 1
            if response.content and response.content.strip():
                return self._respond(session, response, exhausted=True)
            if response.has_tool_calls:
                logger.warning(
                    f"[{self.name}] Ignoring {len(response.tool_calls)} tool call(s) requested after the budget ran out"
                )

        return self._finish(session, EXHAUSTED_NOTICE, exhausted=True)
