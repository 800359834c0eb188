from __future__ import annotations

import os

import pytest

from core.errors import ConfigurationError
from settings import DEFAULT_KEYWORDS, PROJECT_ROOT, load_settings, parse_keywords


def _env(**overrides: str) -> dict[str, str]:
    env = {
        "API_ID": "12345",
        "API_HASH": "hash",
        "BOT_TOKEN": "123:abc",
        "SOURCE_CHANNEL": "@jobs_feed",
        "TARGET_CHANNEL": "-100777",
    }
    env.update(overrides)
    return env


def test_defaults() -> None:
    settings = load_settings(_env())
    assert settings.api_id == 12345
    assert settings.source_channel == "jobs_feed"
    assert settings.target_channel == "-100777"
    assert settings.keywords == parse_keywords(DEFAULT_KEYWORDS)
    assert settings.poll_interval == 30
    assert settings.log_level == "INFO"
    assert settings.session_string == ""
    assert settings.interactive_auth
    assert settings.storage_path.startswith(PROJECT_ROOT)


def test_missing_required_keys_are_listed() -> None:
    env = _env()
    del env["BOT_TOKEN"]
    env["TARGET_CHANNEL"] = " "
    with pytest.raises(ConfigurationError) as exc_info:
        load_settings(env)
    assert "BOT_TOKEN" in str(exc_info.value)
    assert "TARGET_CHANNEL" in str(exc_info.value)


def test_invalid_numbers_are_rejected() -> None:
    with pytest.raises(ConfigurationError):
        load_settings(_env(API_ID="abc"))
    with pytest.raises(ConfigurationError):
        load_settings(_env(POLL_INTERVAL="0"))


def test_keywords_are_normalized() -> None:
    settings = load_settings(_env(JOB_KEYWORDS=" Python, ,Django ,"))
    assert settings.keywords == ["python", "django"]


def test_optional_values() -> None:
    settings = load_settings(
        _env(
            SESSION_STRING="sess",
            POLL_INTERVAL="15",
            LOG_LEVEL="debug",
            STORAGE_PATH="data/ledger.json",
            INTERACTIVE_AUTH="false",
        )
    )
    assert settings.poll_interval == 15
    assert settings.log_level == "DEBUG"
    assert settings.storage_path == os.path.join(PROJECT_ROOT, "data/ledger.json")
    assert not settings.interactive_auth
    assert settings.secrets()[0] == "123:abc"
