"""In-memory record of the tool calls behind each delivered bot reply.

When the bot answers with the help of tools, the calls and their results are
stored against the Discord message that carried the answer. The next time that
message shows up in a history window, the conversation assembler splices the
calls back in so the model sees what it did, not only what it said.

Entries live for the process lifetime at most and are evicted once their
message scrolls out of the fetched history window.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, NamedTuple

from arki_core.llm.messages import ToolResultMessage
from arki_core.llm.tools.response import ToolCall
from config.logging import get_logger

logger = get_logger("arki.ledger")


class LedgerKey(NamedTuple):
    """Composite key: message id plus its creation time in epoch milliseconds."""

    message_id: int
    created_ms: int

    @classmethod
    def for_message(cls, message: Any) -> "LedgerKey":
        """Key for any object exposing ``id`` and ``created_at`` (a Discord message)."""
        return cls(int(message.id), int(message.created_at.timestamp() * 1000))

    def __str__(self) -> str:
        return f"{self.message_id}_{self.created_ms}"


@dataclass
class ToolRound:
    """One assistant tool-request turn and the results answering it.

    Call ids are only unique within a round, so rounds are never merged.
    """

    calls: list[ToolCall] = field(default_factory=list)
    results: list[ToolResultMessage] = field(default_factory=list)


@dataclass
class LedgerEntry:
    """Tool calls and results produced while generating one reply.

    Attributes:
        content: Text of the delivered reply message
        created_ms: Creation time of the reply message (epoch ms)
        rounds: One ToolRound per loop iteration that ran tools, in order
    """

    content: str
    created_ms: int
    rounds: list[ToolRound] = field(default_factory=list)

    @property
    def tool_calls(self) -> list[ToolCall]:
        return [call for r in self.rounds for call in r.calls]

    @property
    def tool_results(self) -> list[ToolResultMessage]:
        return [result for r in self.rounds for result in r.results]

    @property
    def has_invocations(self) -> bool:
        return any(r.calls for r in self.rounds)


class ToolCallLedger:
    """Associative store of LedgerEntry by LedgerKey.

    One instance is created by the entry point and handed to both the
    assembler (reader) and the delivery step (writer). All access happens on
    the bot's event loop thread, so no locking is done.
    """

    def __init__(self) -> None:
        self._entries: dict[LedgerKey, LedgerEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: LedgerKey) -> bool:
        return key in self._entries

    def keys(self) -> list[LedgerKey]:
        return list(self._entries)

    def store(self, key: LedgerKey, entry: LedgerEntry) -> None:
        """Insert or overwrite the entry for ``key``."""
        self._entries[key] = entry
        logger.info(f"Stored {len(entry.tool_calls)} tool call(s) in {len(entry.rounds)} round(s) for message {key}")

    def get(self, key: LedgerKey) -> LedgerEntry | None:
        return self._entries.get(key)

    def get_by_message_id(self, message_id: int) -> LedgerEntry | None:
        """Find an entry knowing only the message id (linear scan)."""
        for key, entry in self._entries.items():
            if key.message_id == message_id:
                return entry
        return None

    def lookup(self, message: Any) -> LedgerEntry | None:
        """Entry for a Discord message: exact composite key first, then id alone."""
        key = LedgerKey.for_message(message)
        entry = self.get(key)
        if entry is None:
            entry = self.get_by_message_id(key.message_id)
            if entry is not None:
                logger.debug(f"Matched ledger entry for message {key.message_id} by id only")
        return entry

    def evict(self, retained_keys: Iterable[LedgerKey], retained_ids: Iterable[int]) -> int:
        """Drop every entry whose key AND message id are both outside the live window.

        Returns the number of entries removed.
        """
        keys = set(retained_keys)
        ids = set(retained_ids)
        stale = [k for k in self._entries if k not in keys and k.message_id not in ids]
        for key in stale:
            del self._entries[key]
            logger.info(f"Evicted tool calls for message {key} (outside history window)")
        return len(stale)

    def evict_outside(self, messages: Iterable[Any]) -> int:
        """Evict against a fetched window of Discord messages."""
        keys: set[LedgerKey] = set()
        ids: set[int] = set()
        for message in messages:
            key = LedgerKey.for_message(message)
            keys.add(key)
            ids.add(key.message_id)
        return self.evict(keys, ids)

    def record_reply(self, message: Any, rounds: list[ToolRound]) -> LedgerKey | None:
        """Store the invocations behind a delivered reply message.

        Nothing is stored when the reply involved no tool use.
        """
        rounds = [r for r in rounds if r.calls]
        if not rounds:
            return None
        key = LedgerKey.for_message(message)
        self.store(key, LedgerEntry(content=message.content or "", created_ms=key.created_ms, rounds=rounds))
        return key
