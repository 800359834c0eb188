"""Telegram-to-core message mapping adapter.

This keeps Telethon-specific details out of the core pipeline.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from telethon.tl.custom import Message

from core.models import SourceMessage

LOGGER = logging.getLogger(__name__)


def _entity_texts(message: Message) -> List[str]:
    get_entities_text = getattr(message, "get_entities_text", None)
    if get_entities_text is None:
        return []
    try:
        return [text for _, text in get_entities_text() if text]
    except (TypeError, ValueError, IndexError):
        return []


def _caption(message: Message) -> Optional[str]:
    # Telethon stores media captions in .message; an explicit caption
    # attribute only exists on some wrapped objects.
    caption = getattr(message, "caption", None)
    if isinstance(caption, str) and caption:
        return caption
    return None


async def _reply_text(message: Message) -> Optional[str]:
    if not getattr(message, "reply_to", None):
        return None
    get_reply_message = getattr(message, "get_reply_message", None)
    if get_reply_message is None:
        return None
    try:
        reply = await get_reply_message()
    except Exception:
        LOGGER.debug("Could not load reply for message %s", message.id, exc_info=True)
        return None
    if reply is None:
        return None
    return getattr(reply, "message", None) or None


async def build_source_message(message: Message, resolve_reply: bool = True) -> SourceMessage:
    """Build a core SourceMessage from a Telethon Message."""

    reply_text = await _reply_text(message) if resolve_reply else None
    return SourceMessage(
        message_id=message.id,
        text=getattr(message, "message", None) or "",
        caption=_caption(message),
        entity_texts=_entity_texts(message),
        reply_text=reply_text,
        date=getattr(message, "date", None),
        has_source_peer=getattr(message, "peer_id", None) is not None,
    )
