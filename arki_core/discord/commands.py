"""Arki Discord slash commands.

Uses Pycord's application commands system. The OpenProject shortcuts call
the same tool functions the nested agent uses, with a client of their own.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

import discord
from discord import option
from discord.ext import commands
from pydantic import BaseModel

from adapters.discord.message_builder import split_message
from tools._base import ToolContext, ToolOutput
from tools.openproject._common import CLIENT_KEY
from tools.openproject.client import OpenProjectClient
from tools.openproject.projects import ListProjectsArgs, list_projects
from tools.openproject.users import SearchUsersArgs, search_users
from tools.openproject.work_packages import (
    AssignUserArgs,
    CreateWorkPackageArgs,
    ListWorkPackagesArgs,
    assign_user,
    create_work_package,
    list_work_packages,
)

from .embeds import create_error_embed, create_status_embed, create_success_embed
from .utils import ANCHOR_TEXT, describe_history, host_status_fields

logger = logging.getLogger("arki.commands")

ToolFunction = Callable[[Any, ToolContext], Awaitable[Any]]


async def safe_defer(ctx: discord.ApplicationContext, ephemeral: bool = False) -> bool:
    """Defer an interaction; False when it already expired."""
    try:
        await ctx.defer(ephemeral=ephemeral)
        return True
    except discord.NotFound:
        logger.warning(f"[commands] Interaction expired before defer for /{ctx.command.qualified_name}")
        return False


class ArkiCommands(commands.Cog):
    """Status, history and OpenProject slash commands."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @property
    def settings(self):
        return self.bot.settings

    # ==========================================================================
    # Bot
    # ==========================================================================

    @discord.slash_command(name="status", description="Displays the status of the bot and the system it is running on.")
    async def status(self, ctx: discord.ApplicationContext):
        embed = create_status_embed(
            "Bot & System Status",
            fields=host_status_fields(self.bot.started_at, self.bot.latency),
        )
        await ctx.respond(embed=embed, ephemeral=True)

    @discord.slash_command(
        name="set-anchor",
        description="Marks a new point from which Arki will fetch chat history in this channel.",
    )
    @discord.default_permissions(manage_messages=True)
    async def set_anchor(self, ctx: discord.ApplicationContext):
        if ctx.guild is None:
            await ctx.respond("This command must be used within a server channel.", ephemeral=True)
            return
        if not await safe_defer(ctx, ephemeral=True):
            return

        try:
            anchor = await ctx.channel.send(ANCHOR_TEXT)
        except discord.Forbidden:
            await ctx.respond(
                embed=create_error_embed(
                    "Missing Permissions",
                    "I do not have permissions to send messages in this channel. Please check my permissions.",
                )
            )
            return

        self.bot.anchors.set(ctx.channel.id, anchor.id)
        await ctx.respond(
            embed=create_success_embed(
                "Anchor point set",
                f"Arki will now only consider messages in this channel created after the one above (ID: {anchor.id}).",
            )
        )

    @discord.slash_command(
        name="debug-history",
        description="Shows the recent message history as it is sent to the model.",
    )
    async def debug_history(self, ctx: discord.ApplicationContext):
        if not await safe_defer(ctx, ephemeral=True):
            return

        try:
            history = await self.bot.fetch_history(ctx.channel)
            messages = await self.bot.assembler.assemble(history, "debug_history command")
        except Exception as e:
            logger.error(f"[commands] Error building history: {e}")
            await ctx.respond(embed=create_error_embed("Error", "Error fetching message history."))
            return

        await ctx.respond(describe_history(messages))

    # ==========================================================================
    # OpenProject
    # ==========================================================================

    async def _run_openproject(self, ctx: discord.ApplicationContext, func: ToolFunction, args: BaseModel) -> None:
        if not await safe_defer(ctx):
            return

        try:
            async with OpenProjectClient.from_settings(self.settings) as client:
                tool_ctx = ToolContext(
                    user_id=str(ctx.author.id),
                    channel_id=str(ctx.channel_id),
                    extra={CLIENT_KEY: client},
                )
                output = await func(args, tool_ctx)
        except Exception as e:
            logger.error(f"[commands] OpenProject command failed: {e}")
            await ctx.respond(embed=create_error_embed("Error", str(e)))
            return

        text = output.content if isinstance(output, ToolOutput) else output
        for chunk in split_message(text, self.settings.discord.max_message_length):
            await ctx.respond(chunk)

    @discord.slash_command(name="op-list-projects", description="List all projects in OpenProject")
    async def op_list_projects(self, ctx: discord.ApplicationContext):
        await self._run_openproject(ctx, list_projects, ListProjectsArgs())

    @discord.slash_command(name="op-list-work-packages", description="List and filter work packages (issues) in OpenProject")
    @option("project", str, description="Filter by project ID or identifier", required=False, default=None)
    @option("assignee_id", int, description="Filter by assignee user ID", required=False, default=None)
    @option("responsible_id", int, description="Filter by responsible user ID", required=False, default=None)
    @option("status", str, description="Filter by status name (e.g., New, In Progress, Closed)", required=False, default=None)
    @option("type", str, description="Filter by work package type (e.g., Task, Bug, Feature)", required=False, default=None)
    @option("priority", str, description="Filter by priority (e.g., Low, Normal, High)", required=False, default=None)
    @option("author_id", int, description="Filter by author/creator user ID", required=False, default=None)
    @option("subject", str, description="Filter by subject/title containing this text", required=False, default=None)
    @option("created_after", str, description="Created after this date (YYYY-MM-DD)", required=False, default=None)
    @option("created_before", str, description="Created before this date (YYYY-MM-DD)", required=False, default=None)
    @option("limit", int, description="Maximum number of results (default: 20, max: 100)", required=False, default=None, min_value=1, max_value=100)
    async def op_list_work_packages(
        self,
        ctx: discord.ApplicationContext,
        project: str = None,
        assignee_id: int = None,
        responsible_id: int = None,
        status: str = None,
        type: str = None,
        priority: str = None,
        author_id: int = None,
        subject: str = None,
        created_after: str = None,
        created_before: str = None,
        limit: int = None,
    ):
        args = ListWorkPackagesArgs(
            project=project,
            assignee=assignee_id,
            responsible=responsible_id,
            status=status,
            type=type,
            priority=priority,
            author=author_id,
            subject=subject,
            created_after=created_after,
            created_before=created_before,
            **({"limit": limit} if limit else {}),
        )
        await self._run_openproject(ctx, list_work_packages, args)

    @discord.slash_command(name="op-search-users", description="Search for users in OpenProject")
    @option("search_term", str, description="Name, login or email to search for", required=False, default=None)
    @option("list_all", bool, description="List all users instead of searching", required=False, default=False)
    async def op_search_users(self, ctx: discord.ApplicationContext, search_term: str = None, list_all: bool = False):
        await self._run_openproject(ctx, search_users, SearchUsersArgs(search_term=search_term, list_all=list_all))

    @discord.slash_command(name="op-create-work-package", description="Create a new work package in OpenProject")
    @option("project_id", int, description="ID of the project")
    @option("subject", str, description="Title of the work package")
    @option("description", str, description="Detailed description (markdown)", required=False, default=None)
    @option("type_id", int, description="Work package type ID", required=False, default=None)
    @option("status_id", int, description="Initial status ID", required=False, default=None)
    @option("priority_id", int, description="Priority ID", required=False, default=None)
    @option("assignee_id", int, description="User ID to assign", required=False, default=None)
    @option("responsible_id", int, description="User ID responsible", required=False, default=None)
    @option("start_date", str, description="Start date (YYYY-MM-DD)", required=False, default=None)
    @option("due_date", str, description="Due date (YYYY-MM-DD)", required=False, default=None)
    @option("estimated_time", str, description='Estimated time (ISO-8601 duration, e.g. "PT8H")', required=False, default=None)
    @option("percentage_done", int, description="Percentage done (0-100)", required=False, default=None, min_value=0, max_value=100)
    async def op_create_work_package(
        self,
        ctx: discord.ApplicationContext,
        project_id: int,
        subject: str,
        description: str = None,
        type_id: int = None,
        status_id: int = None,
        priority_id: int = None,
        assignee_id: int = None,
        responsible_id: int = None,
        start_date: str = None,
        due_date: str = None,
        estimated_time: str = None,
        percentage_done: int = None,
    ):
        args = CreateWorkPackageArgs(
            project_id=project_id,
            subject=subject,
            description=description,
            type_id=type_id,
            status_id=status_id,
            priority_id=priority_id,
            assignee_id=assignee_id,
            responsible_id=responsible_id,
            start_date=start_date,
            due_date=due_date,
            estimated_time=estimated_time,
            percentage_done=percentage_done,
        )
        await self._run_openproject(ctx, create_work_package, args)

    @discord.slash_command(name="op-assign-user", description="Assign users to a work package in OpenProject")
    @option("work_package_id", int, description="ID of the work package")
    @option("assignee_id", int, description="User ID to set as assignee", required=False, default=None)
    @option("responsible_id", int, description="User ID to set as responsible", required=False, default=None)
    @option("assignee_name", str, description="Name or login of the assignee", required=False, default=None)
    @option("responsible_name", str, description="Name or login of the responsible user", required=False, default=None)
    async def op_assign_user(
        self,
        ctx: discord.ApplicationContext,
        work_package_id: int,
        assignee_id: int = None,
        responsible_id: int = None,
        assignee_name: str = None,
        responsible_name: str = None,
    ):
        args = AssignUserArgs(
            work_package_id=work_package_id,
            assignee_id=assignee_id,
            responsible_id=responsible_id,
            assignee_name=assignee_name,
            responsible_name=responsible_name,
        )
        await self._run_openproject(ctx, assign_user, args)
