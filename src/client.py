"""Telegram client factory for jobrelay.

We explicitly manage the client's lifecycle (connect/disconnect) so it is
obvious when the session is created and when it ends. Sessions are kept as
StringSession values so they can live in the environment instead of a file.
"""

from __future__ import annotations

import logging

from telethon import TelegramClient
from telethon.sessions import StringSession


def build_client(api_id: int, api_hash: str, session_string: str = "") -> TelegramClient:
    """Create a Telethon user client, resuming ``session_string`` when given."""

    logging.getLogger(__name__).info("Initializing Telegram client")

    return TelegramClient(
        StringSession(session_string or None),
        api_id,
        api_hash,
        connection_retries=5,
        retry_delay=1,
        timeout=10,
    )


def export_session(client: TelegramClient) -> str:
    """Return the client's session as a string suitable for SESSION_STRING."""

    return StringSession.save(client.session)
