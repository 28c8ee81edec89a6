"""openproject_agent tool: a nested agent with its own OpenProject toolset.

Every invocation builds a fresh OpenProject client, a registry holding only
the six OpenProject tools, and a completion client bound to the agent's own
system prompt. The outer model sees a single tool; the nested loop never sees
the outer registry.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from arki_core.agent_loop import AgentLoop
from arki_core.llm.client import CompletionClient
from arki_core.llm.tools.schema import ToolSchema
from config.logging import get_logger
from tools._base import ToolContext, ToolDef
from tools._registry import ToolRegistry

from . import metadata, projects, users, work_packages
from ._common import CLIENT_KEY
from .client import OpenProjectClient

if TYPE_CHECKING:
    from arki_core.config import ArkiSettings

logger = get_logger("tools.openproject")

# (system_prompt, tool schemas) -> completion client
CompletionFactory = Callable[[str, list[ToolSchema]], CompletionClient]
ClientFactory = Callable[[], OpenProjectClient]

TASK_PREAMBLE = "Please help me with this OpenProject task: "

SUMMARY_PROMPT = (
    "Please provide a comprehensive final summary of your OpenProject management results. "
    "Include ALL the detailed information you found - work package IDs, titles, statuses, "
    "users, dates, links, etc. Do not just say the task was completed, show the actual data "
    "and results you discovered."
)

OPENPROJECT_TOOLS: list[ToolDef] = [
    users.TOOL,
    projects.TOOL,
    *work_packages.TOOLS,
    metadata.TOOL,
]


class OpenProjectAgentArgs(BaseModel):
    task: str = Field(..., description="The OpenProject management task you want the agent to perform")
    context: str | None = Field(None, description="Additional context or requirements for the OpenProject task")
    max_iterations: int | None = Field(
        None,
        ge=1,
        le=8,
        description="Maximum number of tool iterations the agent can perform (default: 5)",
    )


def build_openproject_registry(client: OpenProjectClient) -> ToolRegistry:
    """Registry over the OpenProject tools, all sharing ``client``."""
    return ToolRegistry(OPENPROJECT_TOOLS, context=ToolContext(extra={CLIENT_KEY: client}))


def build_agent_prompt(task: str, context: str | None, base_url: str, max_iterations: int) -> str:
    context_line = f"Additional context: {context}" if context else ""
    return f"""You are an OpenProject Agent, a specialized AI assistant focused on OpenProject management tasks.

Your capabilities include:
- Searching and managing users (find user IDs from names/emails)
- Listing and managing projects
- Creating, updating, and managing work packages (issues/tasks)
- Advanced filtering and searching of work packages
- Assigning users to work packages and managing responsibilities
- Comprehensive project workflow management

Your goal is to help with the OpenProject task: "{task}"

{context_line}

OpenProject Instance: {base_url}

IMPORTANT WORKFLOW GUIDELINES:
1. **Action-Oriented**: DO NOT explain what you're going to do - just do it. Execute tools immediately without lengthy explanations.

2. **Multi-step Tasks**: Complete the full workflow in one go. Use multiple tools in sequence without stopping to explain.

3. **User ID Resolution**: When given user names or emails (not IDs):
   - Use `search_users` to find the user ID, then immediately use `list_work_packages` with appropriate filters
   - **IMPORTANT**: "Issues by [user]" queries should check BOTH author AND assignee to get comprehensive results
   - For "authored by" specifically: use `author` filter for issues created by the user
   - For "assigned to" specifically: use `assignee` filter for issues assigned to the user
   - For general "by" queries: default to `assignee` filter (more common use case)

4. **Status/Type/Priority Resolution**: When filtering by status/type/priority and unsure of exact names:
   - Use `get_metadata` to get exact values, then immediately use `list_work_packages` with correct filters
   - **IMPORTANT**: If status name fails with "invalid values" error, try using the status ID instead

5. **Comprehensive Filtering**: Use `list_work_packages` with appropriate filters:
   - project, assignee, responsible, type, status, priority, author
   - subject, description (text search)
   - Date ranges: created_after/before, updated_after/before, start_date_after/before, due_date_after/before
   - percentage_done ranges

6. **Complete Results**: Always provide:
   - Full work package details (ID, subject, status, assignee, dates, etc.)
   - **CRITICAL**: Always include clickable links to view items in OpenProject (work packages, projects, users)
   - Summary counts and relevant context
   - User-friendly formatting with clear sections

7. **Tool Sequence Examples**:
   - "List issues by John" → search_users("John") → list_work_packages(assignee=user_id) → show results
   - "Done issues by Anju" → search_users("Anju") → get_metadata() → list_work_packages(assignee=user_id, status="Closed") → show results
   - "Issues authored by John" → search_users("John") → list_work_packages(author=user_id) → show results
   - "Assign task to Sarah" → search_users("Sarah") → assign_user(user_id) → show results
   - "Create task for Mike" → search_users("Mike") → create_work_package(assignee_id=user_id) → show results

8. **Smart User Matching**: When search_users returns multiple matches:
   - Prioritize an exact first name match, then an exact last name match, then a full name containing the search term
   - **Use the Best Match**: When search_users shows a "🎯 Best Match" result, immediately use that user ID
   - **Clarification**: Only ask for clarification if there are multiple equally valid matches (no clear best match)

9. **Error Handling**: Handle API errors gracefully and provide meaningful error messages. If a tool fails, try alternative approaches.

Be thorough and complete multi-step workflows. You have {max_iterations} tool iterations - use them effectively to provide comprehensive results, not just partial information. EXECUTE TOOLS IMMEDIATELY WITHOUT EXPLAINING - users want results, not explanations of what you're going to do.

**CRITICAL**: When providing final responses, always include the actual detailed data you found through your tools. Never just say "task completed" - show the work packages, user details, project information, etc. that you discovered.

**LINKS REQUIREMENT**: Every OpenProject result MUST include clickable links - work packages, projects, and users should all have their respective view/profile links included in the response."""


def format_agent_result(content: str, tool_count: int, iterations: int) -> str:
    return (
        f"**OpenProject Agent Results**\n\n{content}\n\n---\n"
        f"*Task completed using {tool_count} specialized OpenProject tools in {iterations} iterations*"
    )


def make_openproject_agent_tool(
    completion_factory: CompletionFactory,
    settings: "ArkiSettings",
    client_factory: ClientFactory | None = None,
) -> ToolDef:
    """Build the openproject_agent ToolDef.

    Args:
        completion_factory: Returns a completion client bound to a system prompt
            and tool schemas (normally ``ChatCompletionClient.bind``)
        settings: Supplies the OpenProject instance and the loop budgets
        client_factory: Override for the OpenProject client (tests)
    """
    make_client = client_factory or (lambda: OpenProjectClient.from_settings(settings))
    agent_settings = settings.agent

    async def run_agent(args: OpenProjectAgentArgs, ctx: ToolContext) -> str:
        max_iterations = args.max_iterations or agent_settings.openproject_max_iterations
        client = make_client()
        try:
            registry = build_openproject_registry(client)
            logger.info(f"Starting OpenProject task: {args.task!r}")
            logger.debug(f"OpenProject tools: {', '.join(registry.get_tool_names())}")

            prompt = build_agent_prompt(args.task, args.context, client.base_url, max_iterations)
            loop = AgentLoop(
                completion_factory(prompt, registry.get_schemas()),
                registry,
                max_iterations=max_iterations,
                extension=agent_settings.identifier_extension,
                summary_iterations=agent_settings.summary_iterations,
                summary_prompt=SUMMARY_PROMPT,
                name="openproject",
            )
            result = await loop.run(args.task, args.context, preamble=TASK_PREAMBLE)
        finally:
            await client.close()

        return format_agent_result(result.content, result.tool_count, result.iterations)

    return ToolDef(
        name="openproject_agent",
        description=(
            "A specialized AI agent for ALL OpenProject management tasks including: listing/searching "
            "work packages, finding users, creating tasks, managing assignments, and project operations. "
            "Use this for ANY request involving OpenProject, issues, work packages, tasks, bugs, "
            "projects, or user management."
        ),
        args_model=OpenProjectAgentArgs,
        handler=run_agent,
        emoji="📋",
        label="OpenProject Agent",
    )
