"""Tests for the agent loop."""

import pytest
from pydantic import BaseModel

from arki_core.agent_loop import (
    DEFAULT_SUMMARY_PROMPT,
    EMPTY_RESPONSE_NOTICE,
    EXHAUSTED_NOTICE,
    AgentLoop,
)
from arki_core.llm.errors import RateLimitedError
from arki_core.llm.messages import AssistantMessage, ToolResultMessage, UserMessage
from arki_core.llm.tools.response import ToolCall
from tools._base import ToolContext, ToolDef, ToolOutput
from tools._registry import ToolRegistry


class NoArgs(BaseModel):
    pass


def _ping(args, ctx):
    return "pong"


async def _lookup(args, ctx):
    return ToolOutput(content="**User ID:** 8", follow_up_expected=True)


async def _boom(args, ctx):
    raise RuntimeError("tool crashed")


@pytest.fixture
def registry():
    return ToolRegistry(
        [
            ToolDef("ping", "Ping", NoArgs, _ping),
            ToolDef("lookup", "Resolve a user", NoArgs, _lookup),
            ToolDef("boom", "Fails", NoArgs, _boom),
        ],
        context=ToolContext(),
    )


def _call(n: int, name: str = "ping") -> ToolCall:
    return ToolCall.create(f"call_{n}", name)


class FailingClient:
    async def complete(self, messages, use_tools=True):
        raise RateLimitedError("429 from upstream", 429)


# ============================================================================
# Construction and seeding
# ============================================================================


class TestSetup:
    """Tests for configuration and the seed message."""

    def test_rejects_zero_budget(self, registry, scripted_client):
        with pytest.raises(ValueError):
            AgentLoop(scripted_client([]), registry, max_iterations=0)

    def test_task_message_appends_context(self):
        message = AgentLoop.task_message("list projects", "only active ones", preamble="Task: ")
        assert message == UserMessage(content="Task: list projects\n\nContext: only active ones")

    def test_task_message_without_context(self):
        assert AgentLoop.task_message("list projects").content == "list projects"


# ============================================================================
# Termination
# ============================================================================


class TestTermination:
    """Tests for the ways a run ends."""

    @pytest.mark.asyncio
    async def test_plain_text_ends_after_one_request(self, registry, scripted_client, responses):
        client = scripted_client([responses.text("all done")])

        result = await AgentLoop(client, registry, max_iterations=3).run("say hi")

        assert len(client.requests) == 1
        assert result.content == "all done"
        assert result.iterations == 0
        assert result.tool_calls == []
        assert not result.budget_exhausted

    @pytest.mark.asyncio
    async def test_empty_text_gets_fallback(self, registry, scripted_client, responses):
        client = scripted_client([responses.text("   ")])
        result = await AgentLoop(client, registry).run("say hi")
        assert result.content == EMPTY_RESPONSE_NOTICE

    @pytest.mark.asyncio
    @pytest.mark.parametrize("budget", [1, 2, 3, 5])
    async def test_tool_hungry_model_stops_by_budget_plus_two(self, registry, scripted_client, responses, budget):
        client = scripted_client([responses.tools(_call(1))])

        result = await AgentLoop(client, registry, max_iterations=budget, extension=0).run("loop forever")

        assert len(client.requests) <= budget + 2
        assert result.iterations <= budget + 2
        assert result.content
        assert result.budget_exhausted

    @pytest.mark.asyncio
    async def test_exhausted_without_text_returns_notice(self, registry, scripted_client, responses):
        client = scripted_client([responses.tools(_call(1))])
        result = await AgentLoop(client, registry, max_iterations=2, extension=0).run("loop")
        assert result.content == EXHAUSTED_NOTICE

    @pytest.mark.asyncio
    async def test_summary_requested_after_budget(self, registry, scripted_client, responses):
        client = scripted_client(
            [
                responses.tools(_call(1)),
                responses.tools(_call(2)),
                responses.text("Here is what I found."),
            ]
        )

        result = await AgentLoop(client, registry, max_iterations=2, extension=0).run("work")

        assert result.content == "Here is what I found."
        assert result.budget_exhausted
        last_request = client.requests[-1]
        assert last_request[-1] == UserMessage(content=DEFAULT_SUMMARY_PROMPT)

    @pytest.mark.asyncio
    async def test_no_tools_run_after_summary_prompt(self, scripted_client, responses):
        """A model that keeps asking for tools gets no executions past the budget."""
        executed = []

        def record(args, ctx):
            executed.append(ctx)
            return "pong"

        registry = ToolRegistry([ToolDef("ping", "Ping", NoArgs, record)], context=ToolContext())
        client = scripted_client([responses.tools(_call(1))])

        result = await AgentLoop(client, registry, max_iterations=1, extension=0, summary_iterations=2).run("x")

        assert len(executed) == 1
        assert client.tool_flags == [True, False, False]
        assert result.tool_count == 1
        assert len(result.rounds) == 1
        assert result.content == EXHAUSTED_NOTICE
        for request in client.requests[1:]:
            assert request[-1] == UserMessage(content=DEFAULT_SUMMARY_PROMPT)

    @pytest.mark.asyncio
    async def test_completion_failure_propagates(self, registry):
        with pytest.raises(RateLimitedError):
            await AgentLoop(FailingClient(), registry).run("anything")


# ============================================================================
# Execution
# ============================================================================


class TestExecution:
    """Tests for tool execution inside the loop."""

    @pytest.mark.asyncio
    async def test_request_then_results_appended_in_order(self, registry, scripted_client, responses):
        client = scripted_client(
            [
                responses.tools(_call(1), _call(2, "lookup")),
                responses.text("done"),
            ]
        )

        result = await AgentLoop(client, registry, max_iterations=3).run("two tools")

        second = client.requests[1]
        assert isinstance(second[1], AssistantMessage)
        assert [tc.id for tc in second[1].tool_calls] == ["call_1", "call_2"]
        assert [(m.tool_call_id, m.content) for m in second[2:]] == [
            ("call_1", "pong"),
            ("call_2", "**User ID:** 8"),
        ]
        assert result.iterations == 1
        assert result.tool_count == 2
        assert [r.tool_call_id for r in result.tool_results] == ["call_1", "call_2"]

    @pytest.mark.asyncio
    async def test_tool_failure_does_not_stop_loop(self, registry, scripted_client, responses):
        client = scripted_client([responses.tools(_call(1, "boom")), responses.text("recovered")])

        result = await AgentLoop(client, registry).run("try it")

        assert len(client.requests) == 2
        error = client.requests[1][-1]
        assert isinstance(error, ToolResultMessage)
        assert error.content == "Error: Failed to execute tool boom: tool crashed"
        assert result.content == "recovered"

    @pytest.mark.asyncio
    async def test_unknown_tool_does_not_stop_loop(self, registry, scripted_client, responses):
        client = scripted_client([responses.tools(_call(1, "ghost")), responses.text("ok")])

        result = await AgentLoop(client, registry).run("try it")

        assert client.requests[1][-1].content == "Error: Unknown tool 'ghost'"
        assert result.content == "ok"


# ============================================================================
# Budget extension
# ============================================================================


class TestExtension:
    """Tests for extra iterations after an identifier-producing tool."""

    @pytest.mark.asyncio
    async def test_follow_up_extends_budget(self, registry, scripted_client, responses):
        client = scripted_client(
            [
                responses.tools(_call(1, "lookup")),
                responses.tools(_call(2)),
                responses.text("listed"),
            ]
        )

        result = await AgentLoop(client, registry, max_iterations=1, extension=2).run("issues by raj")

        assert result.content == "listed"
        assert result.iterations == 2
        assert not result.budget_exhausted

    @pytest.mark.asyncio
    async def test_without_signal_budget_holds(self, registry, scripted_client, responses):
        client = scripted_client([responses.tools(_call(1)), responses.text("summary")])

        result = await AgentLoop(client, registry, max_iterations=1, extension=2).run("ping once")

        assert result.budget_exhausted
        assert result.iterations == 2

    @pytest.mark.asyncio
    async def test_extension_granted_once(self, registry, scripted_client, responses):
        client = scripted_client([responses.tools(_call(1, "lookup"))])

        result = await AgentLoop(client, registry, max_iterations=1, extension=2, summary_iterations=2).run("x")

        # 1 + 2 extended iterations, then at most 2 summary requests
        assert len(client.requests) <= 5
        assert result.budget_exhausted
