"""Work package tools: list_work_packages, create_work_package, assign_user.

Tools: list_work_packages, create_work_package, assign_user
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from config.logging import get_logger
from tools._base import ToolContext, ToolDef

from ._common import API_ERRORS, get_client, short_date, short_datetime, truncate
from .client import OpenProjectClient
from .models import User, WorkPackage

logger = get_logger("tools.openproject")

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


# --- list_work_packages ---


class ListWorkPackagesArgs(BaseModel):
    project: int | str | None = Field(None, description="Filter by project ID or identifier")
    assignee: int | str | None = Field(
        None, description="Filter by assignee user ID or login name (user who is assigned to work on the task)"
    )
    responsible: int | str | None = Field(
        None, description="Filter by responsible user ID or login name (user who is accountable for the task)"
    )
    type: int | str | None = Field(None, description="Filter by work package type ID or name (e.g., Task, Bug)")
    status: int | str | None = Field(None, description="Filter by status ID or name (e.g., New, In Progress, Closed)")
    priority: int | str | None = Field(None, description="Filter by priority ID or name (e.g., Low, Normal, High)")
    author: int | str | None = Field(
        None, description="Filter by author/creator user ID or login name (user who created the work package)"
    )
    subject: str | None = Field(None, description="Filter by subject/title containing this text")
    description: str | None = Field(None, description="Filter by description containing this text")
    created_after: str | None = Field(None, description="Created after this date (YYYY-MM-DD)")
    created_before: str | None = Field(None, description="Created before this date (YYYY-MM-DD)")
    updated_after: str | None = Field(None, description="Updated after this date (YYYY-MM-DD)")
    updated_before: str | None = Field(None, description="Updated before this date (YYYY-MM-DD)")
    start_date_after: str | None = Field(None, description="Start date after this date (YYYY-MM-DD)")
    start_date_before: str | None = Field(None, description="Start date before this date (YYYY-MM-DD)")
    due_date_after: str | None = Field(None, description="Due date after this date (YYYY-MM-DD)")
    due_date_before: str | None = Field(None, description="Due date before this date (YYYY-MM-DD)")
    percentage_done: str | None = Field(None, description='Filter by percentage done (e.g., "0", "50", "100")')
    limit: int = Field(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT, description="Maximum number of results (default 20, max 100)")


def date_window(after: str | None, before: str | None, timestamps: bool) -> str | None:
    """Filter expression for a date window.

    ``timestamps`` widens plain dates to the start and end of day, for
    datetime fields such as createdAt.
    """
    start = f"{after}T00:00:00Z" if timestamps and after else after
    end = f"{before}T23:59:59Z" if timestamps and before else before
    if start and end:
        return f"<>d:{start},{end}"
    if start:
        return f">={start}"
    if end:
        return f"<{end}"
    return None


def work_package_filters(args: ListWorkPackagesArgs) -> dict[str, Any]:
    filters: dict[str, Any] = {}
    for key in ("project", "assignee", "responsible", "type", "status", "priority", "author"):
        value = getattr(args, key)
        if value is not None:
            filters[key] = str(value)
    if args.subject:
        filters["subject"] = args.subject
    if args.description:
        filters["description"] = args.description

    windows = {
        "createdAt": date_window(args.created_after, args.created_before, timestamps=True),
        "updatedAt": date_window(args.updated_after, args.updated_before, timestamps=True),
        "startDate": date_window(args.start_date_after, args.start_date_before, timestamps=False),
        "dueDate": date_window(args.due_date_after, args.due_date_before, timestamps=False),
    }
    filters.update({k: v for k, v in windows.items() if v})

    if args.percentage_done:
        filters["percentageDone"] = args.percentage_done
    return filters


def format_work_package(wp: WorkPackage, client: OpenProjectClient, index: int) -> list[str]:
    lines = [
        f"**{index}. #{wp.id}: {wp.subject}**",
        f"   • Project: {wp.link_title('project')}",
        f"   • Type: {wp.link_title('type')}",
        f"   • Status: {wp.link_title('status')}",
        f"   • Priority: {wp.link_title('priority')}",
        f"   • Author: {wp.link_title('author')}",
    ]
    if wp.link("assignee"):
        lines.append(f"   • Assignee: {wp.link_title('assignee')}")
    if wp.link("responsible"):
        lines.append(f"   • Responsible: {wp.link_title('responsible')}")
    lines.append(f"   • Progress: {wp.percentage_done or 0}%")
    if wp.start_date:
        lines.append(f"   • Start Date: {wp.start_date}")
    if wp.due_date:
        lines.append(f"   • Due Date: {wp.due_date}")
    if wp.estimated_time:
        lines.append(f"   • Estimated: {wp.estimated_time}")
    if wp.spent_time:
        lines.append(f"   • Spent: {wp.spent_time}")
    lines.append(f"   • Created: {short_date(wp.created_at)}")
    lines.append(f"   • Updated: {short_date(wp.updated_at)}")
    if wp.description and wp.description.raw:
        lines.append(f"   • Description: {truncate(wp.description.raw)}")
    lines.append(f"   • 🔗 **View:** {client.work_package_url(wp.id)}")
    return lines


async def list_work_packages(args: ListWorkPackagesArgs, ctx: ToolContext) -> str:
    client = get_client(ctx)
    filters = work_package_filters(args)
    try:
        work_packages = (await client.list_work_packages(filters)).elements
    except API_ERRORS as e:
        logger.error(f"Error listing work packages: {e}")
        return f"Error listing work packages: {e}"

    if not work_packages:
        return "No work packages found matching the specified filters."

    shown = work_packages[: args.limit]
    heading = f"**Work Packages Found: {len(work_packages)}**"
    if len(shown) < len(work_packages):
        heading += f" (showing first {len(shown)})"
    lines = [heading, ""]
    if filters:
        lines.extend([f"**Applied Filters:** {', '.join(filters)}", ""])

    for index, wp in enumerate(shown, 1):
        lines.extend(format_work_package(wp, client, index))
        lines.append("")

    if len(shown) < len(work_packages):
        lines.append(f"*Use the limit parameter to see more results (max {MAX_LIMIT})*")

    logger.info(f"Retrieved {len(work_packages)} work packages")
    return "\n".join(lines)


# --- create_work_package ---


class CreateWorkPackageArgs(BaseModel):
    project_id: int = Field(..., description="ID of the project to create the work package in")
    subject: str = Field(..., description="Title/subject of the work package")
    description: str | None = Field(None, description="Detailed description of the work package (supports markdown)")
    type_id: int | None = Field(None, description="ID of the work package type. Defaults to type 1 when omitted.")
    status_id: int | None = Field(None, description="ID of the initial status. If not provided, default status is used.")
    priority_id: int | None = Field(None, description="ID of the priority level. If not provided, default is used.")
    assignee_id: int | None = Field(None, description="ID of the user to assign the work package to")
    responsible_id: int | None = Field(None, description="ID of the user who is responsible for the work package")
    start_date: str | None = Field(None, description="Start date in YYYY-MM-DD format")
    due_date: str | None = Field(None, description="Due date in YYYY-MM-DD format")
    estimated_time: str | None = Field(None, description='Estimated time as ISO-8601 duration (e.g., "PT8H")')
    percentage_done: int | None = Field(None, ge=0, le=100, description="Percentage completion (0-100)")


def create_payload(args: CreateWorkPackageArgs, client: OpenProjectClient) -> dict[str, Any]:
    links: dict[str, Any] = {
        "project": {"href": client.href("projects", args.project_id)},
        "type": {"href": client.href("types", args.type_id or 1)},
    }
    if args.status_id:
        links["status"] = {"href": client.href("statuses", args.status_id)}
    if args.priority_id:
        links["priority"] = {"href": client.href("priorities", args.priority_id)}
    if args.assignee_id:
        links["assignee"] = {"href": client.href("users", args.assignee_id)}
    if args.responsible_id:
        links["responsible"] = {"href": client.href("users", args.responsible_id)}

    payload: dict[str, Any] = {"subject": args.subject, "_links": links}
    if args.description:
        payload["description"] = {"format": "markdown", "raw": args.description}
    if args.start_date:
        payload["startDate"] = args.start_date
    if args.due_date:
        payload["dueDate"] = args.due_date
    if args.estimated_time:
        payload["estimatedTime"] = args.estimated_time
    if args.percentage_done is not None:
        payload["percentageDone"] = args.percentage_done
    return payload


async def create_work_package(args: CreateWorkPackageArgs, ctx: ToolContext) -> str:
    client = get_client(ctx)
    try:
        wp = await client.create_work_package(create_payload(args, client))
    except API_ERRORS as e:
        logger.error(f"Error creating work package: {e}")
        return f"Error creating work package: {e}"

    lines = [
        "**✅ Work Package Created Successfully**",
        "",
        f"**{wp.subject}**",
        f"• ID: #{wp.id}",
        f"• Project: {wp.link_title('project')}",
        f"• Type: {wp.link_title('type')}",
        f"• Status: {wp.link_title('status')}",
        f"• Priority: {wp.link_title('priority')}",
        f"• Author: {wp.link_title('author')}",
    ]
    if wp.link("assignee"):
        lines.append(f"• Assignee: {wp.link_title('assignee')}")
    if wp.link("responsible"):
        lines.append(f"• Responsible: {wp.link_title('responsible')}")
    if wp.start_date:
        lines.append(f"• Start Date: {wp.start_date}")
    if wp.due_date:
        lines.append(f"• Due Date: {wp.due_date}")
    if wp.estimated_time:
        lines.append(f"• Estimated Time: {wp.estimated_time}")
    lines.append(f"• Progress: {wp.percentage_done or 0}%")
    lines.append(f"• Created: {short_datetime(wp.created_at)}")
    if wp.description and wp.description.raw:
        lines.extend(["", "**Description:**", wp.description.raw])
    lines.extend(["", f"🔗 **View:** {client.work_package_url(wp.id)}"])

    logger.info(f"Created work package #{wp.id}")
    return "\n".join(lines)


# --- assign_user ---


class AssignUserArgs(BaseModel):
    work_package_id: int = Field(..., description="ID of the work package to assign users to")
    assignee_id: int | None = Field(None, description="ID of the user to assign as the assignee")
    assignee_name: str | None = Field(None, description="Name or login of the assignee (alternative to assignee_id)")
    responsible_id: int | None = Field(None, description="ID of the user to assign as responsible")
    responsible_name: str | None = Field(
        None, description="Name or login of the responsible user (alternative to responsible_id)"
    )
    list_users: bool = Field(False, description="Set to true to list all available users instead of assigning")


class UserNotFound(Exception):
    pass


async def resolve_user_id(client: OpenProjectClient, name: str) -> int:
    """First search hit whose name or login contains ``name``."""
    needle = name.lower()
    for user in (await client.search_users(name)).elements:
        if needle in user.name.lower() or needle in user.login.lower():
            return user.id
    raise UserNotFound(name)


def format_assignable_users(users: list[User]) -> str:
    lines = [f"**Available Users for Assignment ({len(users)} found)**", ""]
    for index, user in enumerate(users, 1):
        lines.append(f"**{index}. {user.name}**")
        lines.append(f"   • ID: {user.id}")
        lines.append(f"   • Login: {user.login}")
        lines.append(f"   • Email: {user.email or 'hidden'}")
        lines.append(f"   • Status: {user.status}")
        if user.admin:
            lines.append("   • Role: Administrator")
        lines.append("")
    return "\n".join(lines)


async def assign_user(args: AssignUserArgs, ctx: ToolContext) -> str:
    client = get_client(ctx)
    try:
        if args.list_users:
            users = (await client.list_users()).elements
            if not users:
                return "No users found in OpenProject."
            return format_assignable_users(users)

        wp = await client.get_work_package(args.work_package_id)

        assignee_id = args.assignee_id
        responsible_id = args.responsible_id
        try:
            if args.assignee_name and not assignee_id:
                assignee_id = await resolve_user_id(client, args.assignee_name)
            if args.responsible_name and not responsible_id:
                responsible_id = await resolve_user_id(client, args.responsible_name)
        except UserNotFound as e:
            return f"User not found: {e}. Use list_users: true to see available users."

        if not assignee_id and not responsible_id:
            return (
                "No assignee or responsible user specified. Please provide assignee_id/assignee_name or "
                "responsible_id/responsible_name, or use list_users: true to see available users."
            )

        links: dict[str, Any] = {}
        if assignee_id:
            links["assignee"] = {"href": client.href("users", assignee_id)}
        if responsible_id:
            links["responsible"] = {"href": client.href("users", responsible_id)}

        updated = await client.update_work_package(
            args.work_package_id, {"lockVersion": wp.lock_version, "_links": links}
        )
    except API_ERRORS as e:
        logger.error(f"Error assigning user: {e}")
        return f"Error assigning user: {e}"

    assignee = updated.link_title("assignee") if updated.link("assignee") else None
    responsible = updated.link_title("responsible") if updated.link("responsible") else None
    lines = [
        "**✅ Work Package Assignments Updated**",
        "",
        f"**#{updated.id}: {updated.subject}**",
        f"• Project: {updated.link_title('project')}",
        f"• Status: {updated.link_title('status')}",
        f"• ✅ Assignee: {assignee}" if assignee else "• Assignee: Not assigned",
        f"• ✅ Responsible: {responsible}" if responsible else "• Responsible: Not assigned",
        f"• Updated: {short_datetime(updated.updated_at)}",
        "",
        f"🔗 **View:** {client.work_package_url(updated.id)}",
    ]
    logger.info(f"Updated assignments for work package #{updated.id}")
    return "\n".join(lines)


TOOLS = [
    ToolDef(
        name="list_work_packages",
        description=(
            'List and filter work packages (issues) in OpenProject. Use "assignee" for tasks assigned to a '
            'user, "author" for tasks created by a user, "responsible" for tasks the user is accountable for.'
        ),
        args_model=ListWorkPackagesArgs,
        handler=list_work_packages,
        emoji="📋",
    ),
    ToolDef(
        name="create_work_package",
        description="Create a new work package (issue) in OpenProject",
        args_model=CreateWorkPackageArgs,
        handler=create_work_package,
        emoji="🆕",
    ),
    ToolDef(
        name="assign_user",
        description="Assign or reassign users to work packages, or list available users for assignment",
        args_model=AssignUserArgs,
        handler=assign_user,
        emoji="👤",
    ),
]
