"""System prompt with Discord context appended to the persona."""

from __future__ import annotations

from typing import Any

from config.bot import MULTIMODAL_NOTICE


def build_system_prompt(base: str, guild: Any = None, channel: Any = None, author: Any = None) -> str:
    """Persona, multimodal notice, then whatever guild/channel/author context is known."""
    prompt = f"{base}\n\n{MULTIMODAL_NOTICE}"

    if guild is not None:
        prompt += f'\n\nYou are currently in the Discord server: "{guild.name}".'
        if getattr(guild, "description", None):
            prompt += f' The server description is: "{guild.description}".'
        prompt += f" The server has {guild.member_count} members."

    if channel is not None:
        name = getattr(channel, "name", None) or "Unknown Channel"
        prompt += f'\n\nYou are responding in the channel: "{name}".'
        if getattr(channel, "topic", None):
            prompt += f' The channel topic is: "{channel.topic}".'

    if author is not None:
        prompt += f"\n\nYou were mentioned by the user: {author.name}."

    return prompt
