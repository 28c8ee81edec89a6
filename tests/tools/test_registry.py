"""Tests for ToolDef and ToolRegistry."""

import pytest
from pydantic import BaseModel, Field

from arki_core.llm.errors import QuotaExceededError
from arki_core.llm.tools.response import ToolCall
from tools._base import ToolArgumentsError, ToolContext, ToolDef, ToolNotFoundError, ToolOutput
from tools._registry import ToolRegistry


class EchoArgs(BaseModel):
    text: str = Field(..., description="Text to echo")
    times: int = Field(1, ge=1, le=3)


def echo(args: EchoArgs, ctx: ToolContext) -> str:
    return " ".join([args.text] * args.times)


async def whoami(args: BaseModel, ctx: ToolContext) -> ToolOutput:
    return ToolOutput(content=f"user {ctx.user_id}", follow_up_expected=True)


async def explode(args: BaseModel, ctx: ToolContext) -> str:
    raise RuntimeError("kaboom")


async def out_of_credit(args: BaseModel, ctx: ToolContext) -> str:
    raise QuotaExceededError('402 {"error": {"message": "Insufficient credits on key sk-or-123"}}', 402)


class NoArgs(BaseModel):
    pass


ECHO = ToolDef(name="echo", description="Echo text", args_model=EchoArgs, handler=echo)
WHOAMI = ToolDef(name="whoami", description="Current user", args_model=NoArgs, handler=whoami)
EXPLODE = ToolDef(name="explode", description="Always fails", args_model=NoArgs, handler=explode)
NESTED = ToolDef(name="nested", description="Runs another model", args_model=NoArgs, handler=out_of_credit)


@pytest.fixture
def registry():
    return ToolRegistry([ECHO, WHOAMI, EXPLODE], context=ToolContext(user_id="42"))


# ============================================================================
# Definitions and registration
# ============================================================================


class TestToolDef:
    """Tests for schema derivation."""

    def test_parameters_from_args_model(self):
        params = ECHO.parameters
        assert params["type"] == "object"
        assert params["required"] == ["text"]
        assert "title" not in params
        assert params["properties"]["text"]["description"] == "Text to echo"

    def test_empty_model_has_properties(self):
        assert WHOAMI.parameters["properties"] == {}

    def test_openai_format(self):
        schema = ECHO.to_schema().to_openai()
        assert schema["type"] == "function"
        assert schema["function"]["name"] == "echo"

    def test_display_label(self):
        assert ECHO.get_display_label() == "Echo"
        assert ToolDef("get_date_time", "", NoArgs, echo, label="Clock").get_display_label() == "Clock"


class TestRegistration:
    """Tests for register and lookup."""

    def test_duplicate_rejected(self, registry):
        with pytest.raises(ValueError):
            registry.register(ECHO)

    def test_lookup(self, registry):
        assert len(registry) == 3
        assert "echo" in registry
        assert registry.get_tool("missing") is None
        assert registry.get_tool_names() == ["echo", "whoami", "explode"]
        assert [s.name for s in registry.get_schemas()] == ["echo", "whoami", "explode"]


# ============================================================================
# Execution
# ============================================================================


class TestExecute:
    """Tests for execute (raising path)."""

    @pytest.mark.asyncio
    async def test_sync_handler(self, registry):
        output = await registry.execute("echo", {"text": "hi", "times": 2})
        assert output == ToolOutput(content="hi hi")

    @pytest.mark.asyncio
    async def test_async_handler_receives_context(self, registry):
        output = await registry.execute("whoami", {})
        assert output.content == "user 42"
        assert output.follow_up_expected

    @pytest.mark.asyncio
    async def test_unknown_tool(self, registry):
        with pytest.raises(ToolNotFoundError):
            await registry.execute("nope", {})

    @pytest.mark.asyncio
    async def test_invalid_arguments(self, registry):
        with pytest.raises(ToolArgumentsError, match="times"):
            await registry.execute("echo", {"text": "hi", "times": 9})


class TestDispatch:
    """Tests for dispatch, which never raises."""

    @pytest.mark.asyncio
    async def test_success(self, registry):
        execution = await registry.dispatch(ToolCall.create("c1", "echo", {"text": "yo"}))
        assert execution.result.tool_call_id == "c1"
        assert execution.result.name == "echo"
        assert execution.result.content == "yo"
        assert not execution.failed

    @pytest.mark.asyncio
    async def test_unknown_tool_becomes_error(self, registry):
        execution = await registry.dispatch(ToolCall.create("c1", "nope"))
        assert execution.result.content == "Error: Unknown tool 'nope'"
        assert execution.failed

    @pytest.mark.asyncio
    async def test_malformed_json_becomes_error(self, registry):
        execution = await registry.dispatch(ToolCall(id="c2", name="echo", raw_arguments="{not json"))
        assert execution.result.tool_call_id == "c2"
        assert execution.result.content.startswith("Error: Invalid arguments for tool echo:")

    @pytest.mark.asyncio
    async def test_non_object_json_becomes_error(self, registry):
        execution = await registry.dispatch(ToolCall(id="c3", name="echo", raw_arguments="[1, 2]"))
        assert execution.failed

    @pytest.mark.asyncio
    async def test_validation_error_becomes_error(self, registry):
        execution = await registry.dispatch(ToolCall.create("c4", "echo", {}))
        assert execution.result.content.startswith("Error: Invalid arguments for tool echo: text:")

    @pytest.mark.asyncio
    async def test_handler_exception_becomes_error(self, registry):
        execution = await registry.dispatch(ToolCall.create("c5", "explode"))
        assert execution.result.content == "Error: Failed to execute tool explode: kaboom"

    @pytest.mark.asyncio
    async def test_completion_failure_reports_user_message_only(self):
        registry = ToolRegistry([NESTED])
        execution = await registry.dispatch(ToolCall.create("c7", "nested"))

        assert execution.result.content == (
            f"Error: Failed to execute tool nested: {QuotaExceededError.user_message}"
        )
        assert "sk-or-123" not in execution.result.content

    @pytest.mark.asyncio
    async def test_follow_up_signal_carried(self, registry):
        execution = await registry.dispatch(ToolCall.create("c6", "whoami"))
        assert execution.follow_up_expected
