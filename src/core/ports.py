"""Ports (interfaces) used by the relay orchestrator.

Ports define the minimal contracts for the source, forwarder, and ledger
adapters so that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import Iterable, List, Protocol

from core.keyword_filter import KeywordFilter
from core.models import SourceMessage


class LedgerPort(Protocol):
    """Persisted set of handled message ids."""

    def is_processed(self, message_id: int) -> bool:
        ...

    def mark_processed(self, message_id: int) -> None:
        ...

    def cleanup(self, ceiling: int) -> int:
        ...

    def count(self) -> int:
        ...


class SourcePort(Protocol):
    """Inbound transport: cursor-bounded reads from one channel."""

    async def connect(self) -> None:
        ...

    async def get_recent(self, channel: str, limit: int) -> List[SourceMessage]:
        ...

    async def get_new(self, channel: str, limit: int) -> List[SourceMessage]:
        ...

    async def reconnect(self, max_retries: int, delay: float) -> None:
        ...

    async def disconnect(self) -> None:
        ...


class ForwarderPort(Protocol):
    """Outbound transport: delivers formatted posts to the destination."""

    async def initialize(self) -> None:
        ...

    async def validate_destination(self, destination: str) -> str:
        ...

    async def forward(self, message: SourceMessage, destination: str) -> None:
        ...

    async def stop(self) -> None:
        ...


class ComponentBuilder(Protocol):
    """Creates relay components in dependency order."""

    def build_ledger(self) -> LedgerPort:
        ...

    def build_filter(self, keywords: Iterable[str]) -> KeywordFilter:
        ...

    def build_source(self) -> SourcePort:
        ...

    def build_forwarder(self) -> ForwarderPort:
        ...
