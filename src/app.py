"""Application entry point for the tweetwatch bot."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import os
import signal
from logging.handlers import RotatingFileHandler
from typing import Optional, Tuple

from art import tprint
from dotenv import load_dotenv

import settings
from adapters.nitter_fetcher import NitterRssFetcher
from adapters.sqlite_storage import SQLiteStorage
from adapters.telegram_bot_notifier import TelegramBotNotifier
from adapters.telegram_commands import CommandHandlers, register_commands
from adapters.telegram_notifier import TelethonNotifier
from client import bot_token, build_client
from core.config import NotificationConfig, PollConfig, RetentionConfig
from core.dispatcher import DeliveryDispatcher
from core.endpoints import EndpointSelector
from core.fetching import FailoverFetcher
from core.retention import RetentionJob
from core.scheduler import PollScheduler
from core.service import SubscriptionService

NAME = "TWEETWATCH"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    # The Bot API URL embeds the token, so it must never reach a log line.
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/tweetwatch.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _open_storage() -> SQLiteStorage:
    storage = SQLiteStorage(settings.DB_PATH)
    storage.init_db()
    return storage


def _build_notifier(client):
    # Select the notification adapter based on configuration to keep the core
    # dispatcher independent from delivery details.
    config = NotificationConfig(link_preview=settings.LINK_PREVIEW)
    if settings.NOTIFICATION_METHOD == "bot_api":
        return TelegramBotNotifier(bot_token(), config)
    if settings.NOTIFICATION_METHOD == "telethon":
        return TelethonNotifier(client, config)
    raise RuntimeError("notification_method must be 'telethon' or 'bot_api'")


def _build_core(storage: SQLiteStorage, notifier) -> Tuple[PollScheduler, SubscriptionService]:
    if not settings.ENDPOINTS:
        raise RuntimeError("config.json must list at least one endpoint")

    poll_config = PollConfig(
        interval_seconds=settings.POLL_INTERVAL_SECONDS,
        source_delay_seconds=settings.SOURCE_DELAY_SECONDS,
        fetch_limit=settings.FETCH_LIMIT,
        fetch_timeout_seconds=settings.FETCH_TIMEOUT_SECONDS,
    )
    # One selector for the whole process: rotation survives across sources.
    selector = EndpointSelector(settings.ENDPOINTS)
    backend = NitterRssFetcher(
        canonical_base=settings.CANONICAL_BASE,
        user_agent=settings.USER_AGENT,
        timeout_seconds=poll_config.fetch_timeout_seconds,
    )
    fetcher = FailoverFetcher(backend, selector, timeout_seconds=poll_config.fetch_timeout_seconds * 2)
    dispatcher = DeliveryDispatcher(storage, notifier)
    scheduler = PollScheduler(storage, fetcher, dispatcher, poll_config)
    service = SubscriptionService(storage, fetcher, scheduler)
    return scheduler, service


def _retention_job(storage: SQLiteStorage) -> RetentionJob:
    return RetentionJob(
        storage,
        RetentionConfig(days=settings.RETENTION_DAYS, interval_hours=settings.RETENTION_INTERVAL_HOURS),
    )


async def _serve(client, scheduler: PollScheduler, retention: RetentionJob) -> None:
    logger = logging.getLogger(__name__)
    await client.start(bot_token=bot_token())
    logger.info("Bot connected. Endpoints: %s", ", ".join(settings.ENDPOINTS))

    def _request_shutdown() -> None:
        logger.info("Shutdown requested")
        scheduler.stop()
        retention.stop()
        asyncio.ensure_future(client.disconnect())

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, _request_shutdown)

    tasks = [
        asyncio.create_task(scheduler.run()),
        asyncio.create_task(retention.run()),
    ]
    try:
        await client.run_until_disconnected()
    finally:
        # In-flight source checks finish; no new cycle starts.
        scheduler.stop()
        retention.stop()
        await asyncio.gather(*tasks, return_exceptions=True)


def _run() -> None:
    _print_banner()
    _configure_logging()
    logger = logging.getLogger(__name__)

    logger.info("Starting tweetwatch")

    storage = _open_storage()
    retention = _retention_job(storage)
    retention.purge_once()

    client = build_client()
    notifier = _build_notifier(client)
    logger.info("Selected notification method - %s", settings.NOTIFICATION_METHOD)
    scheduler, service = _build_core(storage, notifier)

    register_commands(client, CommandHandlers(service))
    client.loop.run_until_complete(_serve(client, scheduler, retention))


def _check(handle: str) -> None:
    _configure_logging()
    logger = logging.getLogger(__name__)

    storage = _open_storage()
    client = build_client()
    notifier = _build_notifier(client)
    scheduler, _ = _build_core(storage, notifier)

    async def _run_check() -> None:
        await client.start(bot_token=bot_token())
        try:
            result = await scheduler.force_check(handle)
        finally:
            await client.disconnect()
        logger.info(
            "Checked @%s: ok=%s, items=%s, delivered=%s, cursor=%s",
            result.handle,
            result.ok,
            result.items,
            result.stats.delivered,
            result.cursor,
        )

    client.loop.run_until_complete(_run_check())


def _purge() -> None:
    _configure_logging()
    storage = _open_storage()
    removed = _retention_job(storage).purge_once()
    print(f"Removed {removed} delivery records")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="tweetwatch")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the bot and the poll loop")
    check_parser = subparsers.add_parser("check", help="Check one account now and exit")
    check_parser.add_argument("handle")
    subparsers.add_parser("purge", help="Delete delivery records past the retention window")

    args = parser.parse_args(argv)
    if args.command == "check":
        _check(args.handle)
        return
    if args.command == "purge":
        _purge()
        return
    _run()


if __name__ == "__main__":
    main()
