"""Pycord adapter: ArkiBot (main), reply splitting (message_builder), typing keep-alive."""

from adapters.discord.message_builder import DISCORD_MSG_LIMIT, clean_content, send_split, split_message

__all__ = ["DISCORD_MSG_LIMIT", "clean_content", "send_split", "split_message"]
