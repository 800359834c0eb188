"""Environment-driven configuration for jobrelay.

Secrets and channel settings live in the environment (or a .env file loaded
with python-dotenv) so nothing sensitive is committed to the repo.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from dotenv import load_dotenv

from core.errors import ConfigurationError

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# Where the processed-id ledger lives unless STORAGE_PATH overrides it.
DEFAULT_STORAGE_PATH = os.path.join(PROJECT_ROOT, "storage", "processed-messages.json")

DEFAULT_KEYWORDS = "developer,flutter,react,backend,frontend,software,engineer,programmer,coder"

REQUIRED_KEYS = ("API_ID", "API_HASH", "BOT_TOKEN", "SOURCE_CHANNEL", "TARGET_CHANNEL")

# Values masked in log output.
SECRET_KEYS = ("API_HASH", "BOT_TOKEN", "SESSION_STRING")

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    api_id: int
    api_hash: str
    bot_token: str
    source_channel: str
    target_channel: str
    session_string: str = ""
    keywords: List[str] = field(default_factory=list)
    poll_interval: int = 30
    log_level: str = "INFO"
    log_file: Optional[str] = None
    storage_path: str = DEFAULT_STORAGE_PATH
    interactive_auth: bool = True

    def secrets(self) -> List[str]:
        values = [self.api_hash, self.bot_token, self.session_string]
        return sorted({value for value in values if value}, key=len, reverse=True)


def parse_keywords(raw: Optional[str]) -> List[str]:
    """Split a comma-separated keyword list, lowercasing and dropping blanks."""

    raw = raw or DEFAULT_KEYWORDS
    return [k.strip().lower() for k in raw.split(",") if k.strip()]


def _parse_positive_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{key} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ConfigurationError(f"{key} must be positive, got {value}")
    return value


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from ``env`` (defaults to os.environ after loading .env)."""

    if env is None:
        load_dotenv()
        env = os.environ

    missing = [key for key in REQUIRED_KEYS if not (env.get(key) or "").strip()]
    if missing:
        raise ConfigurationError(
            f"Missing required environment variables: {', '.join(missing)}\n"
            "Please check your .env file or copy .env.example to .env"
        )

    try:
        api_id = int(env["API_ID"])
    except ValueError as exc:
        raise ConfigurationError(f"API_ID must be an integer, got {env['API_ID']!r}") from exc

    storage_path = env.get("STORAGE_PATH") or DEFAULT_STORAGE_PATH
    if not os.path.isabs(storage_path):
        storage_path = os.path.join(PROJECT_ROOT, storage_path)

    return Settings(
        api_id=api_id,
        api_hash=env["API_HASH"].strip(),
        bot_token=env["BOT_TOKEN"].strip(),
        # Source channels are resolved by bare username.
        source_channel=env["SOURCE_CHANNEL"].strip().replace("@", ""),
        target_channel=env["TARGET_CHANNEL"].strip(),
        session_string=(env.get("SESSION_STRING") or "").strip(),
        keywords=parse_keywords(env.get("JOB_KEYWORDS")),
        poll_interval=_parse_positive_int(env, "POLL_INTERVAL", 30),
        log_level=(env.get("LOG_LEVEL") or "info").strip().upper(),
        log_file=env.get("LOG_FILE") or None,
        storage_path=storage_path,
        interactive_auth=(env.get("INTERACTIVE_AUTH") or "true").strip().lower() in _TRUE_VALUES,
    )
