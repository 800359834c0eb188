"""Application entry point for the jobrelay watcher."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
import sys
from functools import partial
from logging.handlers import RotatingFileHandler
from typing import Iterable, List, Optional

from art import tprint

from adapters.bot_forwarder import BotForwarder
from adapters.json_ledger import JsonLedger
from adapters.telegram_source import TelegramSourceReader
from client import build_client
from core.config import RelayConfig
from core.errors import ConfigurationError
from core.keyword_filter import KeywordFilter
from core.orchestrator import RelayOrchestrator
from get_session import InteractiveAuthenticator, NonInteractiveAuthenticator
from settings import PROJECT_ROOT, Settings, load_settings

NAME = "JOBRELAY"
FONT = "tarty-1"

EXIT_OK = 0
EXIT_FAILURE = 1


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: List[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _configure_logging(level_name: str = "INFO", log_file: Optional[str] = None, secrets: Iterable[str] = ()) -> None:
    level = getattr(logging, level_name.upper(), logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    formatter = _RedactingFormatter(list(secrets), fmt=fmt, datefmt=datefmt)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    handlers: List[logging.Handler] = [console_handler]

    if log_file:
        path = log_file
        if not os.path.isabs(path):
            path = os.path.join(PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        file_handler = RotatingFileHandler(
            path,
            maxBytes=5 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)


class TelegramComponentBuilder:
    """Builds the Telegram-backed components from Settings."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def build_ledger(self) -> JsonLedger:
        return JsonLedger(self._settings.storage_path)

    def build_filter(self, keywords: Iterable[str]) -> KeywordFilter:
        return KeywordFilter(keywords)

    def build_source(self) -> TelegramSourceReader:
        settings = self._settings
        if settings.interactive_auth:
            authenticator = InteractiveAuthenticator()
        else:
            authenticator = NonInteractiveAuthenticator()
        return TelegramSourceReader(
            client_factory=partial(build_client, settings.api_id, settings.api_hash),
            authenticator=authenticator,
            session_string=settings.session_string,
        )

    def build_forwarder(self) -> BotForwarder:
        return BotForwarder(self._settings.bot_token)


def build_relay_config(settings: Settings) -> RelayConfig:
    return RelayConfig(
        source_channel=settings.source_channel,
        target_channel=settings.target_channel,
        poll_interval=float(settings.poll_interval),
    )


def _install_signal_handlers(orchestrator: RelayOrchestrator) -> None:
    loop = asyncio.get_running_loop()
    logger = logging.getLogger(__name__)

    def _on_signal(name: str) -> None:
        logger.info("Signal received (%s)", name)
        loop.create_task(orchestrator.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _on_signal, sig.name)
        except (NotImplementedError, RuntimeError):
            # Windows event loops have no signal handler support.
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(_on_signal, "signal"))


async def _run_relay(settings: Settings) -> int:
    logger = logging.getLogger(__name__)
    logger.info("Initializing jobrelay...")
    logger.info("Source channel: %s", settings.source_channel)
    logger.info("Target channel: %s", settings.target_channel)
    logger.info("Keywords: %s keywords", len(settings.keywords))
    logger.info("Poll interval: %ss", settings.poll_interval)

    orchestrator = RelayOrchestrator(
        config=build_relay_config(settings),
        builder=TelegramComponentBuilder(settings),
        keywords=settings.keywords,
    )
    _install_signal_handlers(orchestrator)

    try:
        await orchestrator.run()
    except Exception:
        logger.exception("Fatal error")
        await orchestrator.stop()
        return EXIT_FAILURE

    # A signal-driven stop may still be disconnecting; wait for it to finish.
    await orchestrator.stop()
    return EXIT_FAILURE if orchestrator.failed else EXIT_OK


def _run() -> int:
    _print_banner()
    try:
        settings = load_settings()
    except ConfigurationError as exc:
        _configure_logging()
        logging.getLogger(__name__).error("%s", exc)
        return EXIT_FAILURE

    _configure_logging(settings.log_level, settings.log_file, settings.secrets())
    return asyncio.run(_run_relay(settings))


def _session() -> int:
    from get_session import main as session_main

    _print_banner()
    _configure_logging()
    asyncio.run(session_main())
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="jobrelay")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the relay")
    subparsers.add_parser("session", help="Log in interactively and print a SESSION_STRING")

    args = parser.parse_args(argv)
    if args.command == "session":
        sys.exit(_session())
    sys.exit(_run())


if __name__ == "__main__":
    main()
