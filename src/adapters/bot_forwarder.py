"""Telegram Bot API forwarder adapter.

Uses the Bot API for delivery so job posts are re-posted by a bot into the
destination chat.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import urllib.error
import urllib.request
from typing import Any, Optional

from adapters.message_formatting import format_job_post
from core.errors import ConfigurationError, ConnectivityError, DestinationError, TransientDeliveryError
from core.models import SourceMessage

LOGGER = logging.getLogger(__name__)

NUMERIC_CHAT_ID = re.compile(r"^-?\d+$")

CHAT_NOT_FOUND_GUIDANCE = """Target chat not found: {destination}
Solutions:
1. Create a channel and add the bot as admin:
   - Create a new channel in Telegram
   - Add your bot (@{bot}) as an administrator
   - Use the channel username (e.g., @my_jobs_channel) in TARGET_CHANNEL
2. Get the chat ID:
   - Forward a message from your target channel/group to @userinfobot
   - It will show the chat ID (e.g., -1001234567890)
   - Use that ID in TARGET_CHANNEL
3. Use your personal chat ID:
   - Start a chat with your bot and send /start
   - Get your chat ID from @userinfobot and use it in TARGET_CHANNEL"""

NO_RIGHTS_GUIDANCE = (
    "Bot doesn't have permission to send messages to {destination}. "
    "Make sure the bot is added as an administrator to the channel/group."
)

SELF_DESTINATION_MESSAGE = """Cannot send messages to bot's own username (@{username}).
Please use one of the following:
1. A channel username (e.g., @my_jobs_channel) - bot must be admin
2. A chat ID (e.g., -1001234567890) - get from @userinfobot
3. Your personal chat ID with the bot"""


class BotApiError(Exception):
    """Error response returned by the Bot API."""

    def __init__(self, error_code: int, description: str) -> None:
        super().__init__(f"Bot API error {error_code}: {description}")
        self.error_code = error_code
        self.description = description


class BotForwarder:
    """Forwarder adapter that re-posts messages via the Telegram Bot API."""

    def __init__(self, bot_token: str, timeout: float = 10.0) -> None:
        self._bot_token = bot_token
        self._timeout = timeout
        self.me: Optional[dict] = None
        self.is_ready = False

    def _endpoint(self, method: str) -> str:
        # The Bot API endpoint is deterministic and derived from the token.
        return f"https://api.telegram.org/bot{self._bot_token}/{method}"

    def _post(self, method: str, payload: dict) -> Any:
        """Blocking Bot API call returning the ``result`` field."""

        data = json.dumps(payload).encode("utf-8")
        request = urllib.request.Request(self._endpoint(method), data=data, method="POST")
        request.add_header("Content-Type", "application/json")
        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                body = json.loads(response.read().decode("utf-8"))
        except urllib.error.HTTPError as e:
            raw = e.read().decode("utf-8", errors="replace")
            try:
                description = json.loads(raw).get("description", raw)
            except ValueError:
                description = raw
            raise BotApiError(e.code, description) from e

        if not body.get("ok", False):
            raise BotApiError(int(body.get("error_code", 0)), str(body.get("description", "")))
        return body.get("result")

    async def _call(self, method: str, payload: Optional[dict] = None) -> Any:
        return await asyncio.to_thread(self._post, method, payload or {})

    async def initialize(self) -> None:
        """Verify the token with getMe and mark the forwarder ready."""

        LOGGER.info("Initializing Telegram bot...")
        try:
            self.me = await self._call("getMe")
        except (BotApiError, urllib.error.URLError, OSError, ValueError) as exc:
            self.is_ready = False
            raise ConnectivityError(f"Error initializing bot: {exc}") from exc
        LOGGER.info("Bot initialized: @%s (%s)", self.me.get("username"), self.me.get("first_name"))
        self.is_ready = True

    async def validate_destination(self, destination: str) -> str:
        """Resolve ``destination`` to a chat id, or fall back to the username form."""

        destination = str(destination).strip()
        if NUMERIC_CHAT_ID.match(destination):
            LOGGER.debug("Using chat ID: %s", destination)
            return destination

        username = destination.lstrip("@")
        bot_username = (self.me or {}).get("username") or ""
        if bot_username and username.lower() == bot_username.lower():
            raise ConfigurationError(SELF_DESTINATION_MESSAGE.format(username=username))

        try:
            chat = await self._call("getChat", {"chat_id": f"@{username}"})
        except (BotApiError, urllib.error.URLError, OSError, ValueError):
            # Private chats may not be resolvable but can still accept messages.
            LOGGER.warning("Could not validate chat @%s, attempting to send anyway...", username)
            return f"@{username}"

        LOGGER.debug("Validated chat: %s (ID: %s)", chat.get("title") or chat.get("username"), chat.get("id"))
        return str(chat["id"])

    async def send_text(self, text: str, destination: str) -> None:
        """Send a custom HTML message to ``destination``."""

        if not self.is_ready:
            raise RuntimeError("Bot not initialized")
        await self._send(text, destination, disable_preview=True)
        LOGGER.info("Custom message sent to %s", destination)

    async def forward(self, message: SourceMessage, destination: str) -> None:
        """Re-post ``message`` to ``destination`` as formatted HTML."""

        if not self.is_ready:
            raise RuntimeError("Bot not initialized")
        await self._send(format_job_post(message), destination, disable_preview=False)
        LOGGER.info("Message %s forwarded to %s", message.message_id, destination)

    async def _send(self, text: str, destination: str, disable_preview: bool) -> None:
        payload = {
            "chat_id": destination,
            "text": text,
            "parse_mode": "HTML",
            "disable_web_page_preview": disable_preview,
        }
        try:
            await self._call("sendMessage", payload)
        except BotApiError as exc:
            raise self._classify(exc, destination) from exc
        except (urllib.error.URLError, OSError, ValueError) as exc:
            # ValueError covers a 200 reply whose body is not JSON.
            raise TransientDeliveryError(f"Error sending message: {exc}") from exc

    def _classify(self, exc: BotApiError, destination: str) -> Exception:
        description = exc.description.lower()
        bot = (self.me or {}).get("username") or "your_bot"
        if exc.error_code == 400 and "chat not found" in description:
            return DestinationError(
                str(exc),
                guidance=CHAT_NOT_FOUND_GUIDANCE.format(destination=destination, bot=bot),
            )
        if exc.error_code == 403 or "not enough rights" in description:
            return DestinationError(str(exc), guidance=NO_RIGHTS_GUIDANCE.format(destination=destination))
        return TransientDeliveryError(str(exc))

    async def stop(self) -> None:
        """Mark the forwarder stopped. Stopping twice is not an error."""

        if not self.is_ready:
            LOGGER.debug("Bot was not running, skipping stop")
            return
        self.is_ready = False
        LOGGER.info("Bot stopped")
