"""Telethon source reader.

Wraps the user-account client: connect/authorize, cursor-bounded reads from one
channel, and fixed-delay reconnects. Transport failures surface as
ConnectivityError; nothing here retries except ``reconnect``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol

from telethon import TelegramClient

from adapters.telegram_mapper import build_source_message
from core.errors import ConnectivityError, ReconnectFailedError
from core.models import SourceMessage

LOGGER = logging.getLogger(__name__)


class Authenticator(Protocol):
    async def authenticate(self, client: TelegramClient) -> str:
        ...


ClientFactory = Callable[[str], TelegramClient]
Sleep = Callable[[float], Awaitable[None]]


class TelegramSourceReader:
    """Source adapter over a Telethon user client."""

    def __init__(
        self,
        client_factory: ClientFactory,
        authenticator: Authenticator,
        session_string: str = "",
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._client_factory = client_factory
        self._authenticator = authenticator
        self._session_string = session_string
        self._sleep = sleep
        self._client: Optional[TelegramClient] = None
        self._entities: Dict[str, Any] = {}
        self.is_connected = False
        self.last_message_id = 0

    async def connect(self) -> None:
        """Connect, authorizing through the injected authenticator if needed."""

        LOGGER.info("Connecting to Telegram...")
        try:
            self._client = self._client_factory(self._session_string)
            await self._client.connect()
            self.is_connected = True

            if not await self._client.is_user_authorized():
                LOGGER.warning("Not authorized. Starting sign-in process...")
                session_string = await self._authenticator.authenticate(self._client)
                if session_string and session_string != self._session_string:
                    self._session_string = session_string
                    LOGGER.warning("Save this session string to your .env file:")
                    LOGGER.warning("SESSION_STRING=%s", session_string)
        except ConnectivityError:
            await self._discard_client()
            raise
        except Exception as exc:
            await self._discard_client()
            raise ConnectivityError(f"Error connecting to Telegram: {exc}") from exc

        LOGGER.info("Successfully connected and authorized to Telegram")

    async def _discard_client(self) -> None:
        """Close a half-opened client so a failed connect leaves nothing live."""

        self.is_connected = False
        if self._client is None:
            return
        try:
            await self._client.disconnect()
        except Exception:
            LOGGER.debug("Error closing client after failed connect", exc_info=True)

    async def disconnect(self) -> None:
        if self._client is None or not self.is_connected:
            return
        try:
            await self._client.disconnect()
            LOGGER.info("Disconnected from Telegram")
        except Exception:
            LOGGER.exception("Error disconnecting")
        finally:
            self.is_connected = False

    def _require_client(self) -> TelegramClient:
        if self._client is None or not self.is_connected:
            raise ConnectivityError("Client not connected")
        return self._client

    async def _channel(self, channel: str) -> Any:
        entity = self._entities.get(channel)
        if entity is not None:
            return entity
        client = self._require_client()
        try:
            entity = await client.get_entity(channel)
        except Exception as exc:
            raise ConnectivityError(f"Error getting channel {channel}: {exc}") from exc
        LOGGER.info("Channel found: %s", getattr(entity, "title", None) or getattr(entity, "username", channel))
        self._entities[channel] = entity
        return entity

    async def _fetch(self, channel: str, **kwargs: Any) -> List[SourceMessage]:
        entity = await self._channel(channel)
        client = self._require_client()
        try:
            raw_messages = await client.get_messages(entity, **kwargs)
            messages = [await build_source_message(message) for message in raw_messages if message is not None]
        except Exception as exc:
            raise ConnectivityError(f"Error getting messages: {exc}") from exc
        # Telethon returns newest first; the pipeline wants oldest first.
        messages.sort(key=lambda m: m.message_id)
        return messages

    async def get_recent(self, channel: str, limit: int = 50) -> List[SourceMessage]:
        """Fetch the latest ``limit`` posts and move the cursor to the newest."""

        messages = await self._fetch(channel, limit=limit)
        if messages:
            self.last_message_id = max(m.message_id for m in messages)
            LOGGER.info("Initial scan complete. Last message ID: %s", self.last_message_id)
        return messages

    async def get_new(self, channel: str, limit: int = 10) -> List[SourceMessage]:
        """Fetch up to ``limit`` posts newer than the cursor."""

        messages = await self._fetch(channel, limit=limit, min_id=self.last_message_id)
        messages = [m for m in messages if m.message_id > self.last_message_id]
        if messages:
            self.last_message_id = max(self.last_message_id, messages[-1].message_id)
        return messages

    async def reconnect(self, max_retries: int = 3, delay: float = 5.0) -> None:
        """Tear down and reconnect with a fixed delay between attempts."""

        last_error: Optional[Exception] = None
        for attempt in range(1, max_retries + 1):
            LOGGER.info("Reconnection attempt %s/%s", attempt, max_retries)
            try:
                await self.disconnect()
                await self._sleep(delay)
                self._entities.clear()
                await self.connect()
            except Exception as exc:
                LOGGER.error("Reconnection attempt %s failed: %s", attempt, exc)
                last_error = exc
                continue
            LOGGER.info("Reconnection successful")
            return
        raise ReconnectFailedError(f"Reconnect failed after {max_retries} attempts: {last_error}") from last_error
