"""get_metadata tool: statuses, types and priorities."""

from __future__ import annotations

from pydantic import BaseModel, Field

from config.logging import get_logger
from tools._base import ToolContext, ToolDef

from ._common import API_ERRORS, get_client

logger = get_logger("tools.openproject")

USAGE_TIPS = """💡 **Usage Tips:**
• Use the exact status names (e.g., "Closed", "In progress") in your filters
• Status names are case-sensitive
• 🔒 = Closed status, ⭐ = Default, 🏁 = Milestone, ❌ = Inactive
• You can filter by either name (e.g., "Closed") or ID (e.g., "14")"""


class GetMetadataArgs(BaseModel):
    include_statuses: bool = Field(True, description="Include available statuses (default: true)")
    include_types: bool = Field(True, description="Include available work package types (default: true)")
    include_priorities: bool = Field(True, description="Include available priorities (default: true)")


async def get_metadata(args: GetMetadataArgs, ctx: ToolContext) -> str:
    client = get_client(ctx)
    lines = ["**OpenProject Metadata**", ""]
    try:
        if args.include_statuses:
            statuses = (await client.list_statuses()).elements
            lines.append(f"**📋 Available Statuses ({len(statuses)})**")
            for index, status in enumerate(statuses, 1):
                icons = (" 🔒" if status.is_closed else "") + (" ⭐" if status.is_default else "")
                lines.append(f"   {index}. **{status.name}**{icons}")
                lines.append(f"      • ID: {status.id}")
                lines.append(f"      • Closed: {'Yes' if status.is_closed else 'No'}")
                if status.color:
                    lines.append(f"      • Color: {status.color}")
            lines.append("")

        if args.include_types:
            types = (await client.list_types()).elements
            lines.append(f"**🔧 Available Types ({len(types)})**")
            for index, wp_type in enumerate(types, 1):
                icons = (" 🏁" if wp_type.is_milestone else "") + (" ⭐" if wp_type.is_default else "")
                lines.append(f"   {index}. **{wp_type.name}**{icons}")
                lines.append(f"      • ID: {wp_type.id}")
                lines.append(f"      • Milestone: {'Yes' if wp_type.is_milestone else 'No'}")
                if wp_type.color:
                    lines.append(f"      • Color: {wp_type.color}")
            lines.append("")

        if args.include_priorities:
            priorities = (await client.list_priorities()).elements
            lines.append(f"**⚡ Available Priorities ({len(priorities)})**")
            for index, priority in enumerate(priorities, 1):
                icons = (" ⭐" if priority.is_default else "") + ("" if priority.is_active else " ❌")
                lines.append(f"   {index}. **{priority.name}**{icons}")
                lines.append(f"      • ID: {priority.id}")
                lines.append(f"      • Active: {'Yes' if priority.is_active else 'No'}")
                if priority.color:
                    lines.append(f"      • Color: {priority.color}")
            lines.append("")
    except API_ERRORS as e:
        logger.error(f"Error getting metadata: {e}")
        return f"Error getting OpenProject metadata: {e}"

    lines.append(USAGE_TIPS)
    return "\n".join(lines)


TOOL = ToolDef(
    name="get_metadata",
    description=(
        "Get available statuses, types, and priorities from OpenProject for accurate filtering. "
        "Use this when you need to know the exact values for status, type, or priority filters."
    ),
    args_model=GetMetadataArgs,
    handler=get_metadata,
    emoji="🗂️",
)
