"""Per-channel anchor messages.

An anchor bounds history fetches: only messages after it are sent to the
model. Anchors live in memory for the life of the process.
"""

from __future__ import annotations

from config.logging import get_logger

logger = get_logger("arki.anchors")


class AnchorStore:
    def __init__(self) -> None:
        self._anchors: dict[int, int] = {}

    def get(self, channel_id: int) -> int | None:
        return self._anchors.get(channel_id)

    def set(self, channel_id: int, message_id: int) -> None:
        self._anchors[channel_id] = message_id
        logger.info(f"Anchor for channel {channel_id} set to message {message_id}")

    def clear(self, channel_id: int) -> bool:
        """Forget the channel's anchor. Returns whether one was set."""
        if self._anchors.pop(channel_id, None) is None:
            return False
        logger.info(f"Anchor for channel {channel_id} cleared")
        return True
