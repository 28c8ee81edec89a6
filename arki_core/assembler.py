"""Turn a window of Discord messages into the model's conversation history.

Human messages become multimodal user turns (speaker label, reply context,
text, attachments, embeds, stickers, polls, reactions, timestamp). The bot's
own messages become text-only assistant turns, preceded by the tool calls
recorded for them in the ToolCallLedger.
"""

from __future__ import annotations

import base64
import re
from collections import OrderedDict
from collections.abc import Sequence
from pathlib import PurePosixPath
from typing import Any
from urllib.parse import urlparse

import httpx

from arki_core.ledger import LedgerEntry, ToolCallLedger, ToolRound
from arki_core.llm.messages import (
    AssistantMessage,
    ContentPart,
    ContentPartType,
    Message,
    ToolResultMessage,
    UserMessage,
)
from config.logging import get_logger

logger = get_logger("arki.assembler")

IMAGE_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg", ".gif", ".webp"})

_MEDIA_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".png": "image/png",
}
DEFAULT_IMAGE_MEDIA_TYPE = "image/png"

_NAME_UNSAFE = re.compile(r"[^a-zA-Z0-9_-]")

MISSING_RESULT = "Error: No result was recorded for this tool call."


def get_file_extension(filename: str) -> str:
    """Lower-cased extension of a file name or URL path, including the dot."""
    return PurePosixPath(urlparse(filename).path or filename).suffix.lower()


def is_image_attachment(attachment: Any) -> bool:
    """Declared image content type, or an image extension when no type is declared."""
    content_type = getattr(attachment, "content_type", None)
    if content_type:
        return content_type.startswith("image/")
    return get_file_extension(getattr(attachment, "filename", "") or "") in IMAGE_EXTENSIONS


def media_type_from_url(url: str) -> str:
    """Guess an image MIME type from a URL's extension (PNG when unrecognized)."""
    return _MEDIA_TYPES.get(get_file_extension(url), DEFAULT_IMAGE_MEDIA_TYPE)


def speaker_name(display_name: str) -> str:
    """Restrict a display name to the characters allowed in a message name field."""
    return _NAME_UNSAFE.sub("_", display_name)[:64]


def _size_mb(size: int | None) -> str:
    return f"{(size or 0) / (1024 * 1024):.2f}"


class ImageCache:
    """Downloads images and keeps their base64 encoding, keyed by source URL.

    Bounded: once ``capacity`` entries are held, the oldest one is dropped.
    """

    def __init__(self, capacity: int = 100, http_client: httpx.AsyncClient | None = None, timeout: float = 30.0):
        self.capacity = capacity
        self._entries: OrderedDict[str, ContentPart] = OrderedDict()
        self._client = http_client
        self._owns_client = http_client is None
        self._timeout = timeout

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, url: str) -> bool:
        return url in self._entries

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout), follow_redirects=True)
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def fetch(self, url: str) -> ContentPart:
        """Return a base64 image segment for ``url``.

        Raises:
            httpx.HTTPError: If the download fails.
            httpx.InvalidURL: If the attachment URL cannot be parsed.
        """
        cached = self._entries.get(url)
        if cached is not None:
            logger.debug(f"Image cache hit for {url[:50]}...")
            return cached

        logger.debug(f"Downloading image {url[:50]}...")
        response = await self._get_client().get(url)
        response.raise_for_status()

        part = ContentPart(
            type=ContentPartType.IMAGE_BASE64,
            media_type=media_type_from_url(url),
            data=base64.b64encode(response.content).decode("ascii"),
        )
        while len(self._entries) >= self.capacity:
            self._entries.popitem(last=False)
        self._entries[url] = part
        logger.debug(f"Cached image {part.media_type}, {len(part.data or '') // 1024}KB")
        return part


def embed_to_text(embed: Any) -> str:
    text = "[Embed:"
    if getattr(embed, "title", None):
        text += f' Title: "{embed.title}"'
    if getattr(embed, "description", None):
        text += f' Description: "{embed.description}"'
    if getattr(embed, "url", None):
        text += f" URL: {embed.url}"
    author_name = getattr(getattr(embed, "author", None), "name", None)
    if author_name:
        text += f' Author: "{author_name}"'
    fields = getattr(embed, "fields", None) or []
    if fields:
        text += " Fields: " + ", ".join(f'"{f.name}: {f.value}"' for f in fields)
    footer_text = getattr(getattr(embed, "footer", None), "text", None)
    if footer_text:
        text += f' Footer: "{footer_text}"'
    image_url = getattr(getattr(embed, "image", None), "url", None)
    if image_url:
        text += f" Image: {image_url}"
    thumbnail_url = getattr(getattr(embed, "thumbnail", None), "url", None)
    if thumbnail_url:
        text += f" Thumbnail: {thumbnail_url}"
    if getattr(embed, "timestamp", None):
        text += f" Timestamp: {embed.timestamp.isoformat()}"
    return text + "]"


def sticker_to_text(sticker: Any) -> str:
    description = getattr(sticker, "description", None) or "No description"
    return f'[Sticker: "{sticker.name}" - {description}]'


def reactions_to_text(reactions: Sequence[Any]) -> str:
    if not reactions:
        return ""
    rendered = []
    for reaction in reactions:
        emoji = reaction.emoji if isinstance(reaction.emoji, str) else getattr(reaction.emoji, "name", None)
        rendered.append(f"{emoji or 'Unknown'} ({reaction.count})")
    return f"[Reactions: {', '.join(rendered)}]"


def reference_to_text(message: Any) -> str:
    reference = getattr(message, "reference", None)
    if reference is None or not getattr(reference, "message_id", None):
        return ""
    referenced = getattr(reference, "resolved", None) or getattr(reference, "cached_message", None)
    author = getattr(referenced, "author", None)
    if author is None:
        return f"[Reply to: Message ID {reference.message_id}]"
    content = referenced.content or "[No text content]"
    if len(content) > 100:
        content = content[:100] + "..."
    return f'[Reply to: {author.name}: "{content}"]'


def poll_to_text(poll: Any) -> str:
    question = getattr(getattr(poll, "question", None), "text", None) or ""
    text = f'[Poll: "{question}"'
    answers = getattr(poll, "answers", None) or []
    if answers:
        text += " Options: " + ", ".join(f'"{a.text}"' for a in answers)
    expiry = getattr(poll, "expiry", None)
    if expiry:
        text += f" Expires: {expiry.isoformat()}"
    return text + "]"


def attachment_to_text(attachment: Any) -> str:
    """Descriptive text for a non-image attachment."""
    name = attachment.filename
    content_type = getattr(attachment, "content_type", None)
    size = _size_mb(getattr(attachment, "size", 0))

    if content_type and content_type.startswith("audio/"):
        return f"[Audio File: {name} ({size}MB) - {content_type} - URL: {attachment.url}]"

    text = f"[Attachment: {name} ({size}MB)"
    if content_type:
        if content_type.startswith("video/"):
            text += " - Video"
            if getattr(attachment, "width", None) and getattr(attachment, "height", None):
                text += f" ({attachment.width}x{attachment.height})"
        elif "pdf" in content_type:
            text += " - PDF Document"
        elif "text/" in content_type:
            text += " - Text File"
        else:
            text += f" - File ({content_type})"
    if getattr(attachment, "description", None):
        text += f' - Description: "{attachment.description}"'
    return text + f" - URL: {attachment.url}]"


def format_sent_at(message: Any) -> str:
    return message.created_at.astimezone().strftime("%m/%d/%Y, %I:%M:%S %p")


def collapse_to_text(parts: list[ContentPart]) -> str | None:
    """Reduce segments to the single text value an assistant turn may carry."""
    if not parts:
        return None
    if len(parts) == 1 and parts[0].type == ContentPartType.TEXT:
        return parts[0].text
    return " ".join(p.placeholder() for p in parts)


def splice_round(tool_round: ToolRound) -> list[Message]:
    """Tool-request turn followed by exactly one result per requested call.

    Results are paired to calls by id; a call without a recorded result gets
    an error result, and results for unknown ids are dropped.
    """
    by_id: dict[str, ToolResultMessage] = {}
    for result in tool_round.results:
        by_id.setdefault(result.tool_call_id, result)

    spliced: list[Message] = [AssistantMessage(content=None, tool_calls=list(tool_round.calls))]
    for call in tool_round.calls:
        result = by_id.get(call.id)
        if result is None:
            logger.warning(f"No recorded result for tool call {call.id} ({call.name})")
            result = ToolResultMessage(tool_call_id=call.id, content=MISSING_RESULT, name=call.name)
        spliced.append(result)
    return spliced


def splice_ledger_entry(entry: LedgerEntry) -> list[Message]:
    """Every recorded round, in the order the loop ran them."""
    spliced: list[Message] = []
    for tool_round in entry.rounds:
        if tool_round.calls:
            spliced.extend(splice_round(tool_round))
    return spliced


class ConversationAssembler:
    """Builds the message sequence for one completion request.

    Args:
        ledger: Tool-call ledger consulted for the bot's own messages
        image_cache: Downloader/cache for image attachments
        bot_user_id: Discord user id of this bot
    """

    def __init__(self, ledger: ToolCallLedger, image_cache: ImageCache, bot_user_id: int | None = None):
        self.ledger = ledger
        self.image_cache = image_cache
        self.bot_user_id = bot_user_id

    def is_own_message(self, message: Any) -> bool:
        if self.bot_user_id is not None:
            return message.author.id == self.bot_user_id
        return bool(getattr(message.author, "bot", False))

    async def assemble(self, raw_messages: Sequence[Any], current_query: str = "") -> list[Message]:
        """Convert a newest-first window of Discord messages plus the new query."""
        messages: list[Message] = []

        for raw in reversed(list(raw_messages)):
            if self.is_own_message(raw):
                messages.extend(self._assistant_turns(raw))
            else:
                messages.append(await self._user_turn(raw))

        query = (current_query or "").strip()
        if query:
            messages.append(UserMessage(content=query))
        return messages

    async def _image_part(self, attachment: Any) -> ContentPart:
        try:
            return await self.image_cache.fetch(attachment.url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(f"Could not download image {attachment.filename}: {e}")
            return ContentPart.of_text(f"[Image: {attachment.filename} - URL: {attachment.url}]")

    async def _user_turn(self, message: Any) -> UserMessage:
        display = getattr(message.author, "display_name", None) or message.author.name
        parts = [ContentPart.of_text(f"{display}:")]

        reply = reference_to_text(message)
        if reply:
            parts.append(ContentPart.of_text(reply))

        if message.content:
            parts.append(ContentPart.of_text(message.content))

        for attachment in message.attachments:
            if is_image_attachment(attachment):
                parts.append(await self._image_part(attachment))
            else:
                parts.append(ContentPart.of_text(attachment_to_text(attachment)))

        for embed in message.embeds:
            parts.append(ContentPart.of_text(embed_to_text(embed)))
        for sticker in getattr(message, "stickers", None) or []:
            parts.append(ContentPart.of_text(sticker_to_text(sticker)))
        poll = getattr(message, "poll", None)
        if poll is not None:
            parts.append(ContentPart.of_text(poll_to_text(poll)))
        reactions = reactions_to_text(getattr(message, "reactions", None) or [])
        if reactions:
            parts.append(ContentPart.of_text(reactions))

        parts.append(ContentPart.of_text(f"[Sent: {format_sent_at(message)}]"))

        summary = " ".join(p.text for p in parts if p.type == ContentPartType.TEXT and p.text)
        return UserMessage(content=summary, parts=parts, name=speaker_name(display))

    def _assistant_turns(self, message: Any) -> list[Message]:
        stickers = getattr(message, "stickers", None) or []
        if not message.content and not message.attachments and not message.embeds and not stickers:
            return []

        parts: list[ContentPart] = []
        if message.content:
            parts.append(ContentPart.of_text(message.content))
        for attachment in message.attachments:
            if is_image_attachment(attachment):
                parts.append(ContentPart(type=ContentPartType.IMAGE_URL, url=attachment.url))
            else:
                parts.append(ContentPart.of_text(f"[Bot shared: {attachment.filename}]"))
        for embed in message.embeds:
            label = getattr(embed, "title", None) or getattr(embed, "description", None) or "Embedded content"
            parts.append(ContentPart.of_text(f"[Bot embed: {label}]"))
        for sticker in stickers:
            parts.append(ContentPart.of_text(sticker_to_text(sticker)))

        content = collapse_to_text(parts)
        if not content:
            return []

        turns: list[Message] = []
        entry = self.ledger.lookup(message)
        if entry is not None and entry.has_invocations:
            logger.debug(
                f"Re-inserting {len(entry.tool_calls)} tool call(s) in {len(entry.rounds)} round(s) "
                f"before message {message.id}"
            )
            turns.extend(splice_ledger_entry(entry))
        turns.append(AssistantMessage(content=content))
        return turns
