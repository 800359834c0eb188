"""JSON ledger adapter.

Implements the core LedgerPort as a flat JSON snapshot rewritten after every
mutation. Writes are not atomic; a torn file loads as an empty ledger.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from typing import Dict, List, Optional

from core.errors import StorageError

LOGGER = logging.getLogger(__name__)

DEFAULT_CEILING = 10_000


class JsonLedger:
    """Insertion-ordered set of processed message ids backed by a JSON file."""

    def __init__(self, path: str) -> None:
        self._path = path
        # dict keeps insertion order, which is the eviction order.
        self._ids: Dict[int, None] = {}
        self.last_updated: Optional[str] = None
        self.load()

    @property
    def path(self) -> str:
        return self._path

    def load(self) -> None:
        """Read the snapshot. Missing or corrupt files yield an empty ledger."""

        directory = os.path.dirname(self._path)
        try:
            if directory:
                os.makedirs(directory, exist_ok=True)
            if not os.path.exists(self._path):
                LOGGER.info("No existing storage file found, starting fresh")
                self._ids = {}
                return

            with open(self._path, "r", encoding="utf-8") as handle:
                data = json.load(handle)
            ids = data.get("messageIds") or []
            self._ids = dict.fromkeys(int(message_id) for message_id in ids)
            self.last_updated = data.get("lastUpdated")
            LOGGER.info("Loaded %s processed message IDs from storage", len(self._ids))
        except (OSError, ValueError, TypeError, AttributeError) as exc:
            LOGGER.error("Error loading storage: %s", StorageError(f"{self._path}: {exc}"))
            self._ids = {}

    def save(self) -> None:
        """Write the full snapshot. Failures are logged and the ledger stays in memory."""

        self.last_updated = datetime.now(timezone.utc).isoformat()
        data = {
            "messageIds": list(self._ids),
            "lastUpdated": self.last_updated,
        }
        try:
            with open(self._path, "w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2)
        except OSError as exc:
            LOGGER.error("Error saving storage: %s", StorageError(f"{self._path}: {exc}"))

    def is_processed(self, message_id: int) -> bool:
        return message_id in self._ids

    def mark_processed(self, message_id: int) -> None:
        self._ids[message_id] = None
        self.save()

    def count(self) -> int:
        return len(self._ids)

    def ids(self) -> List[int]:
        """Return ids in insertion order."""

        return list(self._ids)

    def cleanup(self, ceiling: int = DEFAULT_CEILING) -> int:
        """Keep only the ``ceiling`` most recently inserted ids; return how many were dropped."""

        excess = len(self._ids) - ceiling
        if excess <= 0:
            return 0
        self._ids = dict.fromkeys(list(self._ids)[excess:])
        self.save()
        LOGGER.info("Cleaned up storage, kept %s most recent message IDs", len(self._ids))
        return excess
