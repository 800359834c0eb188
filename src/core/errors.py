"""Error taxonomy shared by the core and adapters."""

from __future__ import annotations

from typing import Optional


class JobRelayError(Exception):
    """Base class for all relay errors."""


class ConfigurationError(JobRelayError):
    """Missing or invalid settings. Fatal at startup."""


class ConnectivityError(JobRelayError):
    """The source transport is unreachable or unauthenticated."""


class ReconnectFailedError(ConnectivityError):
    """Raised once every reconnect attempt has been used up."""


class DeliveryError(JobRelayError):
    """A single forward attempt failed."""


class DestinationError(DeliveryError):
    """The destination chat is missing or the bot may not post there."""

    def __init__(self, message: str, guidance: Optional[str] = None) -> None:
        super().__init__(message)
        self.guidance = guidance


class TransientDeliveryError(DeliveryError):
    """Forwarding failed for a reason that may go away on retry."""


class StorageError(JobRelayError):
    """Ledger read or write failure. Never fatal."""
