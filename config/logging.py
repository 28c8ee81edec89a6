"""
Process logging: a colored console stream plus an optional mirror into a Discord channel.

Usage:
    from config.logging import get_logger
    logger = get_logger("arki.ledger")
    logger.info("Stored entry", extra={"channel_id": "123"})

Records may carry ``user_id``, ``channel_id`` and ``guild_id`` extras; the
console formatter appends whichever are set.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import sys
from datetime import datetime
from queue import Empty, Full, Queue

RESET = "\033[0m"

LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[35m",
}

# Keyed by any dotted segment of the logger name, most specific first
TAG_COLORS = {
    "ledger": "\033[92m",
    "assembler": "\033[96m",
    "agent": "\033[95m",
    "llm": "\033[91m",
    "openproject": "\033[94m",
    "tools": "\033[36m",
    "commands": "\033[93m",
    "discord": "\033[93m",
    "config": "\033[97m",
}
DEFAULT_TAG_COLOR = "\033[37m"

RECORD_EXTRAS = (("user_id", "user"), ("channel_id", "channel"), ("guild_id", "guild"))

NOISY_LOGGERS = ("httpx", "httpcore", "openai", "discord")

DISCORD_LOG_LIMIT = 1990

_ANSI = re.compile(r"\x1b\[[0-9;]*m")


def tag_color(name: str) -> str:
    for segment in reversed(name.split(".")):
        if segment in TAG_COLORS:
            return TAG_COLORS[segment]
    return DEFAULT_TAG_COLOR


def record_extras(record: logging.LogRecord) -> str:
    parts = [f"{label}={getattr(record, attr)}" for attr, label in RECORD_EXTRAS if getattr(record, attr, None)]
    return f" ({', '.join(parts)})" if parts else ""


class ColoredConsoleFormatter(logging.Formatter):
    """``HH:MM:SS LEVEL    [logger.name] message (extras)`` with ANSI colors."""

    def format(self, record: logging.LogRecord) -> str:
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        level = f"{LEVEL_COLORS.get(record.levelno, '')}{record.levelname:<8}{RESET}"
        tag = f"{tag_color(record.name)}[{record.name}]{RESET}"
        line = f"{clock} {level} {tag} {record.getMessage()}{record_extras(record)}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class DiscordLogHandler(logging.Handler):
    """Mirrors log lines into a Discord channel.

    ``emit`` only enqueues, so it is safe from any thread. A task on the bot's
    loop drains the queue every ``flush_interval`` seconds, at most
    ``batch_size`` lines per pass. Lines that do not fit the queue are dropped.
    """

    PREFIX = {
        logging.DEBUG: "🔍",
        logging.INFO: "ℹ️",
        logging.WARNING: "⚠️",
        logging.ERROR: "❌",
        logging.CRITICAL: "🔴",
    }

    def __init__(self, level: int = logging.INFO, batch_size: int = 5, flush_interval: float = 1.0):
        super().__init__(level)
        self.batch_size = batch_size
        self.flush_interval = flush_interval
        self._queue: Queue[str] = Queue(maxsize=500)
        self._bot = None
        self._channel_id: int | None = None
        self._closed = False
        self._task: asyncio.Task | None = None

    def set_bot(self, bot, channel_id: int, loop: asyncio.AbstractEventLoop):
        """Attach the Discord client and start draining on ``loop``."""
        self._bot, self._channel_id = bot, channel_id
        if self._task is None or self._task.done():
            self._task = loop.create_task(self._drain())

    async def _drain(self):
        while not self._closed:
            await asyncio.sleep(self.flush_interval)
            try:
                await self.flush_pending()
            except Exception as e:
                print(f"[logging] Discord mirror failed: {e}", file=sys.stderr)

    def _take_batch(self) -> list[str]:
        batch: list[str] = []
        while len(batch) < self.batch_size:
            try:
                batch.append(self._queue.get_nowait())
            except Empty:
                break
        return batch

    async def flush_pending(self) -> int:
        """Send one batch of queued lines. Returns how many were delivered."""
        batch = self._take_batch()
        channel = self._bot.get_channel(self._channel_id) if batch and self._bot and self._channel_id else None
        if channel is None:
            return 0

        delivered = 0
        for line in batch:
            if len(line) > DISCORD_LOG_LIMIT:
                line = line[:DISCORD_LOG_LIMIT] + "..."
            try:
                await channel.send(line)
            except Exception as e:
                print(f"[logging] Could not post log line to Discord: {e}", file=sys.stderr)
            else:
                delivered += 1
        return delivered

    def format_discord_message(self, record: logging.LogRecord) -> str:
        """Discord markdown: errors in a diff block, warnings in a fix block, the rest inline."""
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        text = _ANSI.sub("", record.getMessage())
        head = f"`{clock}` **[{record.name}]**"
        if record.levelno >= logging.ERROR:
            return f"{self.PREFIX.get(record.levelno, '')} {head} ```diff\n- {text}```"
        if record.levelno == logging.WARNING:
            return f"{self.PREFIX[logging.WARNING]} {head} ```fix\n{text}```"
        return f"{head} {text}"

    def emit(self, record: logging.LogRecord):
        # discord.* records are skipped: our own sends would feed back into the queue
        if self._closed or self._bot is None or record.name.startswith("discord"):
            return
        try:
            self._queue.put_nowait(self.format_discord_message(record))
        except Full:
            pass
        except Exception:
            self.handleError(record)

    def shutdown(self):
        self._closed = True
        if self._task is not None:
            self._task.cancel()


_discord_handler: DiscordLogHandler | None = None
_configured = False


def _console_level() -> int:
    """LOG_LEVEL from the environment, else logging.level from settings."""
    name = os.getenv("LOG_LEVEL")
    if not name:
        try:
            from arki_core.config import get_settings

            name = get_settings().logging.level
        except Exception:
            name = "INFO"
    return logging.getLevelNamesMapping().get(name.upper(), logging.INFO)


def init_logging(console_level: int | None = None):
    """Install the console handler on the root logger (once per process)."""
    global _configured
    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(console_level if console_level is not None else _console_level())
    handler.setFormatter(ColoredConsoleFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True


def init_discord_logging(bot, channel_id: int, loop) -> DiscordLogHandler | None:
    """Start mirroring to ``channel_id`` once the bot is connected. No-op when the id is 0."""
    global _discord_handler
    if not channel_id:
        return None

    if _discord_handler is None:
        _discord_handler = DiscordLogHandler(level=_console_level())
        logging.getLogger().addHandler(_discord_handler)
    _discord_handler.set_bot(bot, channel_id, loop)
    return _discord_handler


def get_logger(name: str) -> logging.Logger:
    init_logging()
    return logging.getLogger(name)


def shutdown_logging():
    if _discord_handler is not None:
        _discord_handler.shutdown()
