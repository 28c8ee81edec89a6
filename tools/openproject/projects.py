"""list_projects tool."""

from __future__ import annotations

from pydantic import BaseModel

from config.logging import get_logger
from tools._base import ToolContext, ToolDef

from ._common import API_ERRORS, get_client, short_date, truncate

logger = get_logger("tools.openproject")


class ListProjectsArgs(BaseModel):
    pass


async def list_projects(args: ListProjectsArgs, ctx: ToolContext) -> str:
    """List all projects visible to the API key."""
    client = get_client(ctx)
    try:
        projects = (await client.list_projects()).elements
    except API_ERRORS as e:
        logger.error(f"Error listing projects: {e}")
        return f"Error listing projects: {e}"

    if not projects:
        return "No projects found in OpenProject."

    lines = [f"**OpenProject Projects ({len(projects)} found)**", ""]
    for index, project in enumerate(projects, 1):
        lines.append(f"**{index}. {project.name}**")
        lines.append(f"   • ID: {project.id}")
        lines.append(f"   • Identifier: {project.identifier}")
        lines.append(f"   • Status: {'✅ Active' if project.active else '❌ Inactive'}")
        lines.append(f"   • Public: {'Yes' if project.public else 'No'}")
        if project.description and project.description.raw:
            lines.append(f"   • Description: {truncate(project.description.raw)}")
        if project.homepage:
            lines.append(f"   • Homepage: {project.homepage}")
        lines.append(f"   • Created: {short_date(project.created_at)}")
        lines.append(f"   • Updated: {short_date(project.updated_at)}")
        lines.append(f"   • 🔗 **View:** {client.project_url(project.id)}")
        lines.append("")

    logger.info(f"Retrieved {len(projects)} projects")
    return "\n".join(lines)


TOOL = ToolDef(
    name="list_projects",
    description="List all available projects in OpenProject",
    args_model=ListProjectsArgs,
    handler=list_projects,
    emoji="📁",
)
