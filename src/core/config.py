"""Core configuration dataclasses.

We keep environment parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RelayConfig:
    """Timing and sizing knobs for the relay loop."""

    source_channel: str
    target_channel: str
    poll_interval: float = 30.0
    backfill_limit: int = 50
    backfill_delay: float = 0.5
    poll_limit: int = 10
    poll_delay: float = 1.0
    cleanup_every_polls: int = 10
    ledger_ceiling: int = 10_000
    max_reconnect_attempts: int = 5
    reconnect_base_delay: float = 5.0
    reconnect_max_delay: float = 60.0
    source_reconnect_retries: int = 3
    source_reconnect_delay: float = 5.0
    max_forward_attempts: int = 3


def backoff_delay(attempt: int, base: float = 5.0, cap: float = 60.0) -> float:
    """Return the wait after failed reconnect ``attempt`` (1-based)."""

    return min(base * (2 ** (attempt - 1)), cap)
