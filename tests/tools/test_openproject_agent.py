"""Tests for the nested OpenProject agent tool."""

import httpx
import pytest
from pydantic import ValidationError

from arki_core.llm.messages import UserMessage
from arki_core.llm.tools.response import ToolCall
from tools._base import ToolContext
from tools._registry import ToolRegistry
from tools.openproject.agent import (
    OPENPROJECT_TOOLS,
    SUMMARY_PROMPT,
    TASK_PREAMBLE,
    OpenProjectAgentArgs,
    build_agent_prompt,
    format_agent_result,
    make_openproject_agent_tool,
)
from tools.openproject.client import OpenProjectClient

PROJECTS = {
    "_embedded": {"elements": [{"id": 1, "name": "Alpha", "identifier": "alpha", "active": True}]},
    "total": 1,
}


class TrackingClient(OpenProjectClient):
    closed = False

    async def close(self) -> None:
        TrackingClient.closed = True
        await super().close()


@pytest.fixture
def op_client_factory():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/v3/projects":
            return httpx.Response(200, json=PROJECTS)
        return httpx.Response(404, text="missing")

    TrackingClient.closed = False
    return lambda: TrackingClient("https://op.example.com", "op-key", transport=httpx.MockTransport(handler))


class TestPrompt:
    def test_lists_budget_and_task(self):
        prompt = build_agent_prompt("close #12", "from standup", "https://op.example.com", 4)
        assert "You have 4 tool iterations" in prompt
        assert "close #12" in prompt
        assert "https://op.example.com" in prompt

    def test_result_footer(self):
        assert format_agent_result("Done", 2, 1) == (
            "**OpenProject Agent Results**\n\nDone\n\n---\n"
            "*Task completed using 2 specialized OpenProject tools in 1 iterations*"
        )

    def test_tool_set(self):
        names = {t.name for t in OPENPROJECT_TOOLS}
        assert names == {
            "search_users",
            "list_projects",
            "list_work_packages",
            "create_work_package",
            "assign_user",
            "get_metadata",
        }


class TestArgs:
    def test_task_required(self):
        with pytest.raises(ValidationError):
            OpenProjectAgentArgs()

    @pytest.mark.parametrize("value", [0, 9])
    def test_iteration_cap(self, value):
        with pytest.raises(ValidationError):
            OpenProjectAgentArgs(task="x", max_iterations=value)


class TestRun:
    @pytest.mark.asyncio
    async def test_nested_run(self, settings, scripted_client, responses, op_client_factory):
        client = scripted_client(
            [
                responses.tools(ToolCall.create("op_1", "list_projects")),
                responses.text("Found Alpha"),
            ]
        )
        tool = make_openproject_agent_tool(client.bind, settings, client_factory=op_client_factory)
        registry = ToolRegistry([tool], context=ToolContext())

        output = await registry.execute("openproject_agent", {"task": "list projects", "context": "sprint planning"})

        assert output.content == format_agent_result("Found Alpha", 1, 1)
        assert TrackingClient.closed

        prompt, schemas = client.bound[0]
        assert "list projects" in prompt
        assert f"You have {settings.agent.openproject_max_iterations} tool iterations" in prompt
        assert {s.name for s in schemas} == {t.name for t in OPENPROJECT_TOOLS}

        seed = client.requests[0][0]
        assert isinstance(seed, UserMessage)
        assert seed.content == f"{TASK_PREAMBLE}list projects\n\nContext: sprint planning"
        assert "**OpenProject Projects (1 found)**" in client.requests[1][-1].content

    @pytest.mark.asyncio
    async def test_budget_exhaustion_uses_summary_prompt(
        self, settings, scripted_client, responses, op_client_factory
    ):
        client = scripted_client(
            [
                responses.tools(ToolCall.create("op_1", "list_projects")),
                responses.tools(ToolCall.create("op_2", "list_projects")),
                responses.text("Summary"),
            ]
        )
        tool = make_openproject_agent_tool(client.bind, settings, client_factory=op_client_factory)
        registry = ToolRegistry([tool], context=ToolContext())

        output = await registry.execute("openproject_agent", {"task": "audit", "max_iterations": 1})

        assert client.requests[1][-1] == UserMessage(content=SUMMARY_PROMPT)
        assert "Summary" in output.content
        assert TrackingClient.closed
