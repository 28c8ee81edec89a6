"""Arki Discord bot.

Answers @mentions in guild text channels: fetches the recent channel history,
assembles it (splicing back earlier tool calls from the ledger), runs the
conversation loop and delivers the reply.

Usage:
    python -m adapters.discord

Environment variables (or arki.yaml):
    DISCORD__BOT_TOKEN - Discord bot token (required)
    LLM__API_KEY - Chat completion API key (required)
    OPENPROJECT__BASE_URL / OPENPROJECT__API_KEY - OpenProject instance (required)
"""

from __future__ import annotations

import asyncio
import signal
import sys
import time
from typing import Any

import discord
from discord.ext import commands as discord_commands
from dotenv import load_dotenv

from adapters.discord.message_builder import clean_content, send_split
from adapters.discord.typing_indicator import TypingKeepalive
from arki_core.assembler import ConversationAssembler, ImageCache
from arki_core.config import ArkiSettings, get_settings
from arki_core.discord import setup as setup_slash_commands
from arki_core.discord.anchors import AnchorStore
from arki_core.discord.permissions import is_bot_mentioned, is_user_allowed
from arki_core.discord.prompt import build_system_prompt
from arki_core.ledger import ToolCallLedger
from arki_core.llm import ChatCompletionClient, ChatCompletionError
from arki_core.responder import Responder
from config.logging import get_logger, init_discord_logging, init_logging, shutdown_logging
from tools.builtin import build_default_registry

logger = get_logger("adapters.discord")

DENIED_REPLY = "You do not have permission to use this bot."
GENERIC_ERROR_REPLY = "Sorry, I encountered an error while processing your request."

# Unknown Message
UNKNOWN_MESSAGE = 10008


def build_intents() -> discord.Intents:
    intents = discord.Intents.default()
    intents.message_content = True
    intents.members = True
    intents.guilds = True
    return intents


class ArkiBot(discord_commands.Bot):
    """Discord bot wiring the ledger, assembler and responder together."""

    def __init__(
        self,
        settings: ArkiSettings,
        ledger: ToolCallLedger,
        assembler: ConversationAssembler,
        responder: Responder,
        anchors: AnchorStore | None = None,
        base_prompt: str = "",
    ) -> None:
        super().__init__(
            command_prefix="!",
            intents=build_intents(),
            help_command=None,
            debug_guilds=settings.discord.enabled_guilds or None,
        )
        self.settings = settings
        self.ledger = ledger
        self.assembler = assembler
        self.responder = responder
        self.anchors = anchors or AnchorStore()
        self.base_prompt = base_prompt
        self.started_at = time.monotonic()
        setup_slash_commands(self)

    async def on_ready(self) -> None:
        """Called when Discord connection is established."""
        from config.bot import BOT_NAME, PERSONALITY_SOURCE

        self.assembler.bot_user_id = self.user.id
        logger.info(f"{BOT_NAME} logged in as {self.user} (ID: {self.user.id}), persona from {PERSONALITY_SOURCE}")
        logger.info(f"Guilds: {len(self.guilds)}")

        init_discord_logging(self, self.settings.logging.log_channel_id, asyncio.get_running_loop())

    async def fetch_history(self, channel: Any) -> list[discord.Message]:
        """Last ``message_history_limit`` messages, newest first, bounded by the channel anchor."""
        limit = self.settings.discord.message_history_limit
        anchor_id = self.anchors.get(channel.id)
        if anchor_id is not None:
            try:
                return await channel.history(
                    limit=limit, after=discord.Object(id=anchor_id), oldest_first=False
                ).flatten()
            except discord.NotFound as e:
                if e.code != UNKNOWN_MESSAGE:
                    raise
                logger.info(f"Anchor message {anchor_id} is gone, clearing it")
                self.anchors.clear(channel.id)
        return await channel.history(limit=limit).flatten()

    def should_respond(self, message: discord.Message) -> bool:
        if message.author.bot or self.user is None:
            return False
        if not isinstance(message.channel, discord.TextChannel):
            return False
        return is_bot_mentioned(message, self.user.id)

    async def on_message(self, message: discord.Message) -> None:
        """Handle incoming Discord messages."""
        if not self.should_respond(message):
            return

        if not is_user_allowed(message, self.settings):
            logger.info(
                f"Denied request from {message.author}",
                extra={"user_id": message.author.id, "channel_id": message.channel.id},
            )
            await message.reply(DENIED_REPLY, mention_author=False)
            return

        logger.info(
            f"Processing message from {message.author.name}",
            extra={"user_id": message.author.id, "channel_id": message.channel.id},
        )
        typing = TypingKeepalive(message.channel, self.settings.discord.typing_interval)
        max_length = self.settings.discord.max_message_length

        try:
            await typing.start()

            history = await self.fetch_history(message.channel)
            self.ledger.evict_outside(history)

            query = clean_content(message.content, self.user.id)
            system_prompt = build_system_prompt(self.base_prompt, message.guild, message.channel, message.author)
            reply = await self.responder.respond(history, query, system_prompt)

            sent = await send_split(message, reply.content, max_length)
            self.ledger.record_reply(sent, reply.rounds)
        except ChatCompletionError as e:
            logger.error(f"Completion failed [{e.category}]: {e}")
            await send_split(message, e.user_message, max_length)
        except Exception as e:
            logger.exception(f"Error processing message: {e}")
            await send_split(message, GENERIC_ERROR_REPLY, max_length)
        finally:
            typing.stop()


def build_bot(settings: ArkiSettings) -> tuple[ArkiBot, ChatCompletionClient, ImageCache]:
    """Construct the bot and the long-lived collaborators it shares."""
    from config.bot import PERSONALITY

    ledger = ToolCallLedger()
    image_cache = ImageCache(capacity=settings.agent.image_cache_size)
    assembler = ConversationAssembler(ledger, image_cache)
    client = ChatCompletionClient.from_settings(settings)
    registry = build_default_registry(client, settings)
    responder = Responder(assembler, registry, client, settings)
    bot = ArkiBot(settings, ledger, assembler, responder, base_prompt=PERSONALITY)
    return bot, client, image_cache


async def main() -> None:
    """Run the Discord bot."""
    load_dotenv()
    init_logging()

    settings = get_settings()
    problems = settings.validate_required()
    if problems:
        for problem in problems:
            logger.error(problem)
        sys.exit(1)

    bot, client, image_cache = build_bot(settings)

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def signal_handler():
        logger.info("Received shutdown signal")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    start_task = asyncio.create_task(bot.start(settings.discord.bot_token))
    stop_task = asyncio.create_task(stop_event.wait())
    try:
        done, _ = await asyncio.wait({start_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
        if start_task in done and start_task.exception():
            logger.error(f"Bot error: {start_task.exception()}")
    finally:
        if not bot.is_closed():
            await bot.close()
        stop_task.cancel()
        await image_cache.close()
        await client.close()
        shutdown_logging()

    logger.info("Bot stopped")


def run() -> None:
    """Sync entry point for the console script."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
