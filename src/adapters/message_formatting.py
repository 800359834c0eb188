"""Formatting for re-posted job messages.

The bot identity differs from the reader's, so posts are re-sent as new HTML
messages rather than native forwards.
"""

from __future__ import annotations

import html
from datetime import datetime
from typing import Optional

from core.models import SourceMessage

NO_CONTENT = "Message with no text content"
HEADER = "<b>💼 New Job Post</b>"


def extract_display_text(message: Optional[SourceMessage]) -> str:
    """Return the body, else the caption, else a placeholder."""

    if message is None:
        return "No content"
    if message.text:
        return message.text
    if message.caption:
        return message.caption
    return NO_CONTENT


def format_date(date: Optional[datetime]) -> str:
    if date is None:
        return "Unknown date"
    return date.astimezone().strftime("%H:%M:%S %d-%m-%Y")


def format_job_post(message: SourceMessage) -> str:
    """Create the HTML body sent by the bot."""

    text = html.escape(extract_display_text(message), quote=True)
    posted = html.escape(format_date(message.date))

    parts = [
        HEADER,
        "",
        text,
        "",
        f"<i>📅 Posted: {posted}</i>",
        f"<i>🆔 Message ID: {message.message_id}</i>",
    ]
    if message.has_source_peer:
        parts.append("<i>📢 Source: Channel</i>")
    return "\n".join(parts)
