"""Relay state machine.

This module is integration-agnostic. It drives the poll, filter, forward,
record loop through ports, enabling other transports without changes here.

Lifecycle:
1) Initializing: build ledger, filter, source, forwarder (in that order)
2) Backfill: process the most recent posts oldest first
3) Polling: fetch posts past the cursor on a fixed interval
4) Reconnecting: bounded exponential backoff after a connectivity failure
5) Stopped: timer woken, transports torn down
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

from core.config import RelayConfig, backoff_delay
from core.errors import ConnectivityError, DestinationError, TransientDeliveryError
from core.keyword_filter import KeywordFilter
from core.models import SourceMessage
from core.ports import ComponentBuilder, ForwarderPort, LedgerPort, SourcePort

LOGGER = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class RelayState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    BACKFILL_SCANNING = "backfill_scanning"
    POLLING = "polling"
    RECONNECTING_BACKOFF = "reconnecting_backoff"
    STOPPED = "stopped"


@dataclass
class AppContext:
    """Live components, in construction order."""

    ledger: Optional[LedgerPort] = None
    keyword_filter: Optional[KeywordFilter] = None
    source: Optional[SourcePort] = None
    forwarder: Optional[ForwarderPort] = None
    destination: Optional[str] = None

    async def close(self) -> None:
        """Tear down transports in reverse construction order."""

        if self.forwarder is not None:
            try:
                await self.forwarder.stop()
            except Exception:
                LOGGER.exception("Error stopping forwarder")
        if self.source is not None:
            try:
                await self.source.disconnect()
            except Exception:
                LOGGER.exception("Error disconnecting source")


class RelayOrchestrator:
    """Owns the relay lifecycle and the per-message pipeline."""

    def __init__(
        self,
        config: RelayConfig,
        builder: ComponentBuilder,
        keywords: Iterable[str],
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._config = config
        self._builder = builder
        self._keywords = list(keywords)
        self._sleep = sleep
        self.context = AppContext()
        self.state = RelayState.UNINITIALIZED
        self.failed = False
        self._close_task: Optional["asyncio.Future[None]"] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._reconnect_attempts = 0
        self._poll_count = 0
        # message_id -> (message, failed attempts so far)
        self._pending: Dict[int, Tuple[SourceMessage, int]] = {}

    @property
    def pending_ids(self) -> List[int]:
        return sorted(self._pending)

    def _stopping(self) -> asyncio.Event:
        # Created lazily so the event binds to the running loop.
        if self._stop_event is None:
            self._stop_event = asyncio.Event()
        return self._stop_event

    async def initialize(self) -> AppContext:
        """Build and connect every component, or stop and re-raise."""

        self.state = RelayState.INITIALIZING
        context = self.context
        try:
            context.ledger = self._builder.build_ledger()
            LOGGER.info("Storage initialized (%s processed messages)", context.ledger.count())

            context.keyword_filter = self._builder.build_filter(self._keywords)

            context.source = self._builder.build_source()
            await context.source.connect()

            context.forwarder = self._builder.build_forwarder()
            await context.forwarder.initialize()
            context.destination = await context.forwarder.validate_destination(self._config.target_channel)
        except Exception:
            LOGGER.exception("Initialization failed")
            self.failed = True
            await self.stop()
            raise

        LOGGER.info("All components initialized, forwarding to %s", context.destination)
        return context

    async def backfill(self) -> int:
        """Process the most recent posts, oldest first."""

        self.state = RelayState.BACKFILL_SCANNING
        LOGGER.info("Performing initial scan of recent messages...")
        messages = await self.context.source.get_recent(self._config.source_channel, self._config.backfill_limit)
        LOGGER.info("Initial scan found %s recent messages", len(messages))

        for message in sorted(messages, key=lambda m: m.message_id):
            if self.state is RelayState.STOPPED:
                break
            await self.process_message(message)
            await self._sleep(self._config.backfill_delay)
        return len(messages)

    async def start(self) -> None:
        """Initialize, backfill, and enter the polling state."""

        await self.initialize()
        try:
            await self.backfill()
        except Exception:
            LOGGER.exception("Failed to start relay")
            self.failed = True
            await self.stop()
            raise
        if self.state is not RelayState.STOPPED:
            self.state = RelayState.POLLING

    async def run(self) -> None:
        """Start, then poll until stopped.

        The next poll is scheduled only after the previous one has finished
        processing, so polls never overlap.
        """

        await self.start()
        LOGGER.info("Starting polling every %s seconds...", self._config.poll_interval)
        while self.state is RelayState.POLLING:
            await self.poll_once()
            if self.state is not RelayState.POLLING:
                break
            await self._wait(self._config.poll_interval)

    async def _wait(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._stopping().wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def poll_once(self) -> int:
        """Run a single poll cycle and return the number of fetched posts."""

        if self.state is not RelayState.POLLING:
            return 0

        self._poll_count += 1
        await self._retry_pending()

        LOGGER.debug("Polling for new messages in %s...", self._config.source_channel)
        try:
            messages = await self.context.source.get_new(self._config.source_channel, self._config.poll_limit)
        except ConnectivityError as exc:
            if self.state is RelayState.STOPPED:
                # The transports were torn down under the fetch.
                return 0
            LOGGER.error("Error polling for messages: %s", exc)
            await self._handle_reconnection()
            return 0
        except Exception:
            LOGGER.exception("Error polling for messages")
            return 0

        if messages:
            LOGGER.info("Found %s new message(s)", len(messages))
        else:
            LOGGER.debug("No new messages found")

        for message in messages:
            if self.state is RelayState.STOPPED:
                break
            await self.process_message(message)
            await self._sleep(self._config.poll_delay)

        self._reconnect_attempts = 0

        if self._poll_count % self._config.cleanup_every_polls == 0:
            removed = self.context.ledger.cleanup(self._config.ledger_ceiling)
            LOGGER.debug("Ledger cleanup removed %s ids", removed)

        return len(messages)

    async def process_message(self, message: SourceMessage) -> bool:
        """Dedup check, filter, forward, record. Returns True when forwarded."""

        ledger = self.context.ledger
        message_id = message.message_id
        try:
            if ledger.is_processed(message_id):
                LOGGER.debug("Message %s already processed, skipping", message_id)
                self._pending.pop(message_id, None)
                return False

            if not self.context.keyword_filter.is_match(message):
                LOGGER.debug("Message %s doesn't match job criteria, skipping", message_id)
                # Non-matches are recorded too so they are never re-evaluated.
                ledger.mark_processed(message_id)
                return False

            LOGGER.info("Forwarding job post (ID: %s)...", message_id)
            await self.context.forwarder.forward(message, self.context.destination)
            ledger.mark_processed(message_id)
            self._pending.pop(message_id, None)
            LOGGER.info("Message %s processed and forwarded successfully", message_id)
            return True
        except DestinationError as exc:
            LOGGER.error("Cannot deliver message %s to %s: %s", message_id, self.context.destination, exc)
            if exc.guidance:
                LOGGER.error("%s", exc.guidance)
            self._pending.pop(message_id, None)
            return False
        except TransientDeliveryError as exc:
            self._defer(message, exc)
            return False
        except Exception:
            LOGGER.exception("Error processing message %s", message_id)
            return False

    def _defer(self, message: SourceMessage, exc: Exception) -> None:
        _, failures = self._pending.get(message.message_id, (message, 0))
        failures += 1
        if failures >= self._config.max_forward_attempts:
            LOGGER.error(
                "Giving up on message %s after %s failed attempts: %s",
                message.message_id,
                failures,
                exc,
            )
            self._pending.pop(message.message_id, None)
            return
        LOGGER.warning("Forward of message %s failed (%s), will retry on next poll", message.message_id, exc)
        self._pending[message.message_id] = (message, failures)

    async def _retry_pending(self) -> None:
        for message_id in self.pending_ids:
            if self.state is RelayState.STOPPED:
                return
            entry = self._pending.get(message_id)
            if entry is None:
                continue
            await self.process_message(entry[0])
            await self._sleep(self._config.poll_delay)

    async def _handle_reconnection(self) -> None:
        if self.state is RelayState.STOPPED:
            return
        self.state = RelayState.RECONNECTING_BACKOFF
        max_attempts = self._config.max_reconnect_attempts

        while self._reconnect_attempts < max_attempts:
            if self.state is RelayState.STOPPED:
                return
            self._reconnect_attempts += 1
            attempt = self._reconnect_attempts
            LOGGER.warning("Attempting reconnection (%s/%s)...", attempt, max_attempts)
            try:
                await self.context.source.reconnect(
                    self._config.source_reconnect_retries,
                    self._config.source_reconnect_delay,
                )
            except Exception as exc:
                LOGGER.error("Reconnection failed: %s", exc)
                if attempt >= max_attempts:
                    break
                delay = backoff_delay(attempt, self._config.reconnect_base_delay, self._config.reconnect_max_delay)
                LOGGER.info("Waiting %ss before next reconnection attempt...", delay)
                await self._sleep(delay)
                continue

            LOGGER.info("Reconnection successful")
            self._reconnect_attempts = 0
            if self.state is RelayState.STOPPED:
                # Stopped mid-reconnect; drop the fresh connection again.
                await self.context.source.disconnect()
                return
            if self.state is RelayState.RECONNECTING_BACKOFF:
                self.state = RelayState.POLLING
            return

        if self.state is RelayState.STOPPED:
            return
        LOGGER.error("Max reconnection attempts (%s) reached. Stopping...", max_attempts)
        self.failed = True
        await self.stop()

    async def stop(self) -> None:
        """Stop polling and disconnect both transports.

        Every caller waits for the same teardown, so a second call returns only
        once the transports are actually closed.
        """

        if self._close_task is None:
            LOGGER.info("Stopping relay...")
            self.state = RelayState.STOPPED
            self._stopping().set()
            self._close_task = asyncio.ensure_future(self._close())
        # Shielded so a cancelled caller does not abort the teardown.
        await asyncio.shield(self._close_task)

    async def _close(self) -> None:
        await self.context.close()
        LOGGER.info("Relay stopped")
