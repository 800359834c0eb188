"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass(frozen=True)
class SourceMessage:
    """Minimal view of a source channel post used by the relay pipeline."""

    message_id: int
    text: str = ""
    caption: Optional[str] = None
    entity_texts: List[str] = field(default_factory=list)
    reply_text: Optional[str] = None
    date: Optional[datetime] = None
    has_source_peer: bool = False
