"""Keyword matching logic (core domain)."""

from __future__ import annotations

import logging
import re
from typing import Iterable, List

from core.models import SourceMessage

LOGGER = logging.getLogger(__name__)


def _compile(keyword: str) -> re.Pattern:
    return re.compile(rf"\b{re.escape(keyword)}\b", re.IGNORECASE)


class KeywordFilter:
    """Decide whether a source post mentions any configured keyword."""

    def __init__(self, keywords: Iterable[str]) -> None:
        self._keywords: List[str] = []
        self._patterns: List[re.Pattern] = []
        self._load(keywords)
        LOGGER.info("KeywordFilter initialized with %s keywords: %s", len(self._keywords), ", ".join(self._keywords))

    @property
    def keywords(self) -> List[str]:
        return list(self._keywords)

    def _load(self, keywords: Iterable[str]) -> None:
        self._keywords = [k.strip().lower() for k in keywords if k and k.strip()]
        self._patterns = [_compile(k) for k in self._keywords]

    def update_keywords(self, keywords: Iterable[str]) -> None:
        """Swap the keyword set without a restart."""

        self._load(keywords)
        LOGGER.info("Keywords updated: %s", ", ".join(self._keywords))

    @staticmethod
    def extract_text(message: SourceMessage) -> str:
        """Join body, caption, entity text and reply text into one lowercase string.

        Missing parts contribute nothing.
        """

        parts: List[str] = []
        if message.text:
            parts.append(message.text)
        if message.caption:
            parts.append(message.caption)
        for entity_text in message.entity_texts or []:
            if entity_text:
                parts.append(entity_text)
        if message.reply_text:
            parts.append(message.reply_text)
        return " ".join(parts).strip().lower()

    def is_match(self, message: SourceMessage) -> bool:
        """Return True when any keyword appears as a whole word."""

        try:
            text = self.extract_text(message)
            if not text:
                LOGGER.debug("Message has no text content, skipping")
                return False

            for keyword, pattern in zip(self._keywords, self._patterns):
                if pattern.search(text):
                    LOGGER.debug('Keyword match found: "%s"', keyword)
                    LOGGER.info("Job post detected! Text preview: %s...", text[:100])
                    return True
            return False
        except Exception:
            # Malformed message shapes are treated as "no match".
            LOGGER.exception("Error filtering message")
            return False
