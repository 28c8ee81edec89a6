"""Bot configuration - name and base system prompt.

The base prompt is taken from, in priority order:
1. bot.personality_file (path to a markdown/text file)
2. bot.personality (inline text)
3. DEFAULT_PERSONALITY

The bot name is extracted from the first line of the prompt if it starts with
"You are {name}", otherwise from bot.name.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

logger = logging.getLogger("arki.config")


def _s():
    from arki_core.config import get_settings

    return get_settings()


DEFAULT_PERSONALITY = """You are Arki, a helpful AI assistant integrated into a Discord server.

**🛠️ SPECIALIZED AGENTS AVAILABLE:**

**OpenProject Agent** - Use this for ANY OpenProject-related requests:
- When users ask about "issues," "work packages," "tasks," "bugs," or "projects"
- When users mention "OpenProject" explicitly
- For project management tasks like creating, listing, assigning, or updating work items
- For user management in OpenProject (finding users, assignments)
- For any workflow involving work packages, projects, or team assignments

**IMPORTANT**: When you detect an OpenProject-related request, ALWAYS use the 'openproject_agent' tool. Examples:
- "show me issues by raj" → openproject_agent
- "list work packages" → openproject_agent
- "create a task" → openproject_agent
- "assign issue to user" → openproject_agent
- "find user in OpenProject" → openproject_agent

**Other capabilities:**
- General conversation and questions
- Image analysis and multimodal content
- Date/time information
- General assistance

When in doubt about OpenProject requests, use the OpenProject agent - it's designed to handle all project management workflows."""

MULTIMODAL_NOTICE = """**You have native multimodal capabilities:**
- 🖼️ **Images**: You can directly see and analyze images shared in Discord. Describe what you see, answer questions about images, and provide detailed analysis.
- 🎵 **Audio**: You can process audio content when available.
- 📝 **Text**: You can read and respond to text messages with full context.
- 🔗 **Attachments**: You can understand various file types and content.

When users share images, analyze them thoroughly and provide helpful, detailed responses about what you observe."""


def _load_personality() -> tuple[str, str]:
    """Load the base prompt from file, settings, or default.

    Returns (personality_text, source_description).
    """
    s = _s()

    personality_file = s.bot.personality_file
    if personality_file:
        path = Path(personality_file)
        if path.exists():
            return path.read_text(encoding="utf-8").strip(), f"file: {personality_file}"
        logger.warning(f"Personality file not found: {personality_file}")

    if s.bot.personality:
        return s.bot.personality.strip(), "settings: bot.personality"

    return DEFAULT_PERSONALITY, "default"


def _extract_name(personality: str) -> str:
    match = re.match(r"You are (\w+)", personality)
    if match:
        return match.group(1)
    return _s().bot.name


# Load on import
PERSONALITY, PERSONALITY_SOURCE = _load_personality()
BOT_NAME = _extract_name(PERSONALITY)
