"""Keep Discord's typing indicator alive during long operations."""

from __future__ import annotations

import asyncio
from typing import Any

from config.logging import get_logger

logger = get_logger("adapters.discord")


class TypingKeepalive:
    """Re-triggers typing every ``interval`` seconds until stopped.

    Discord shows typing for about 10 seconds per trigger.

    Usage:
        typing = TypingKeepalive(message.channel)
        await typing.start()
        try:
            ...
        finally:
            typing.stop()
    """

    def __init__(self, channel: Any, interval: float = 9.0) -> None:
        self.channel = channel
        self.interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.active:
            return
        await self._trigger()
        self._task = asyncio.create_task(self._loop())

    async def _trigger(self) -> None:
        try:
            await self.channel.trigger_typing()
        except Exception as e:
            logger.debug(f"Typing indicator error: {e}")

    async def _loop(self) -> None:
        try:
            while True:
                await asyncio.sleep(self.interval)
                await self._trigger()
        except asyncio.CancelledError:
            return

    def stop(self) -> None:
        task = self._task
        if task and not task.done():
            task.cancel()
        self._task = None
