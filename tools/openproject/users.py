"""search_users tool."""

from __future__ import annotations

from pydantic import BaseModel, Field

from config.logging import get_logger
from tools._base import ToolContext, ToolDef, ToolOutput

from ._common import API_ERRORS, get_client, short_date
from .models import User

logger = get_logger("tools.openproject")


class SearchUsersArgs(BaseModel):
    search_term: str | None = Field(
        None, description="General search term that will match against user names, logins, and emails"
    )
    name: str | None = Field(None, description="Search specifically by user name (first name, last name, or full name)")
    email: str | None = Field(None, description="Search specifically by email address")
    list_all: bool = Field(
        False,
        description="Set to true to list all users instead of searching (useful when you don't know any user details)",
    )


def matches_locally(user: User, term: str) -> bool:
    term = term.lower()
    fields = (user.name, user.first_name, user.last_name, user.login, user.email or "")
    return any(term in f.lower() for f in fields)


def relevance_key(user: User, term: str) -> tuple:
    """Exact first name, then exact last name, then first-name prefix, then alphabetical."""
    first = user.first_name.lower()
    return (
        first != term,
        user.last_name.lower() != term,
        not first.startswith(term),
        user.name.lower(),
    )


async def search_users(args: SearchUsersArgs, ctx: ToolContext) -> str | ToolOutput:
    client = get_client(ctx)
    term = args.search_term or args.name or args.email

    try:
        if args.list_all:
            users = (await client.list_users()).elements
            heading = "All users"
        else:
            if not term:
                return "Please provide a search_term, name, email, or set list_all to true to see all users."
            users = (await client.search_users(term)).elements
            heading = f'Search results for "{term}"'
            if not users:
                logger.debug(f"No API results for '{term}', filtering all users locally")
                users = [u for u in (await client.list_users()).elements if matches_locally(u, term)]
                heading = f'Local search results for "{term}"'
    except API_ERRORS as e:
        logger.error(f"Error searching users: {e}")
        return f"Error searching users: {e}"

    if not users:
        if args.list_all:
            return "No users found in OpenProject."
        return "No users found matching your search criteria. Try using list_all: true to see all available users."

    rank_term = (args.search_term or args.name or "").lower()
    if not args.list_all and rank_term:
        users.sort(key=lambda u: relevance_key(u, rank_term))

    lines = [f"**{heading} ({len(users)} found)**", ""]
    if not args.list_all and rank_term and len(users) > 1 and users[0].first_name.lower() == rank_term:
        best = users[0]
        lines.append(f"🎯 **Best Match (exact first name):** {best.name} (User ID: {best.id})")
        lines.append("")

    for index, user in enumerate(users, 1):
        lines.append(f"**{index}. {user.name}**")
        lines.append(f"   • **User ID:** {user.id} ⭐ (use this ID in other tools)")
        lines.append(f"   • Login: {user.login}")
        lines.append(f"   • Email: {user.email or 'hidden'}")
        lines.append(f"   • First Name: {user.first_name}")
        lines.append(f"   • Last Name: {user.last_name}")
        lines.append(f"   • Status: {user.status}")
        if user.admin:
            lines.append("   • Role: Administrator 👑")
        lines.append(f"   • Created: {short_date(user.created_at)}")
        lines.append(f"   • 🔗 **Profile:** {client.user_url(user.id)}")
        lines.append("")

    lines.append(
        "💡 **Tip:** Use the User ID (highlighted with ⭐) in other tools like `assign_user` "
        "or `create_work_package` when you need to assign users to work packages."
    )
    logger.info(f"Found {len(users)} users")
    return ToolOutput(content="\n".join(lines), follow_up_expected=True)


TOOL = ToolDef(
    name="search_users",
    description=(
        "Search for users by name or email in OpenProject to find their user IDs and details. "
        "Use this tool when you only have a user's name or email but need their ID for assignments "
        "or other operations."
    ),
    args_model=SearchUsersArgs,
    handler=search_users,
    emoji="🔎",
)
