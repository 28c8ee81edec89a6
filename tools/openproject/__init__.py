"""OpenProject integration: API client, tools and the nested agent.

Tools: search_users, list_projects, list_work_packages, create_work_package,
assign_user, get_metadata (reachable only through openproject_agent)
"""

from .agent import OPENPROJECT_TOOLS, build_openproject_registry, make_openproject_agent_tool
from .client import OpenProjectClient, OpenProjectError

__all__ = [
    "OPENPROJECT_TOOLS",
    "OpenProjectClient",
    "OpenProjectError",
    "build_openproject_registry",
    "make_openproject_agent_tool",
]
