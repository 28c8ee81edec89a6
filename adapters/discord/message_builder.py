"""Message formatting and splitting for Discord.

Handles:
- Query extraction (bot mention removal)
- Message splitting to fit Discord's message limit
- Split delivery (first chunk as a reply, the rest as channel messages)
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import discord

# Discord's hard limit is 2000; replies stay under it
DISCORD_MSG_LIMIT = 1990

EMPTY_REPLY = "I processed your request but have no specific response."


def clean_content(content: str, bot_user_id: int | None) -> str:
    """Remove ``<@id>`` and ``<@!id>`` mentions of the bot and trim.

    Args:
        content: Raw message content
        bot_user_id: The bot's user id (mentions of it are removed)
    """
    if bot_user_id is not None:
        content = re.sub(rf"<@!?{bot_user_id}>", "", content)
    return content.strip()


def split_message(text: str, max_length: int = DISCORD_MSG_LIMIT) -> list[str]:
    """Split a message into Discord-sized chunks.

    Splits at line boundaries; a single line longer than ``max_length`` is
    cut into ``max_length`` pieces.

    Args:
        text: The full text to split
        max_length: Maximum length per chunk

    Returns:
        List of chunks, each at most max_length characters
    """
    if len(text) <= max_length:
        return [text]

    chunks: list[str] = []
    current = ""

    for line in text.split("\n"):
        if current and len(current) + len(line) + 1 > max_length:
            chunks.append(current)
            current = ""

        if current:
            current += "\n" + line
            continue

        current = line
        while len(current) > max_length:
            chunks.append(current[:max_length])
            current = current[max_length:]

    if current:
        chunks.append(current)

    return [c for c in chunks if c.strip()] or [text[:max_length]]


async def send_split(
    message: "discord.Message",
    text: str,
    max_length: int = DISCORD_MSG_LIMIT,
) -> "discord.Message":
    """Reply to ``message`` with ``text``, continuing in the channel when it is too long.

    Returns:
        The first sent message (the reply).
    """
    if not text or not text.strip():
        return await message.reply(EMPTY_REPLY, mention_author=False)

    chunks = split_message(text, max_length)
    first = await message.reply(chunks[0], mention_author=False)
    for chunk in chunks[1:]:
        await message.channel.send(chunk)
    return first
