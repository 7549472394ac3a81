"""Static configuration for tweetwatch.

Poll cadence, upstream endpoints, retention and notifications live in a
single JSON file for quick edits without touching Python. Secrets stay in
the environment (.env).
"""

import json
import os

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

CONFIG_PATH = os.environ.get("TWEETWATCH_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _resolve_path(path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(PROJECT_ROOT, path)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Where to store the SQLite database.
DB_PATH = _resolve_path(_CONFIG.get("database", {}).get("path", "data/tweetwatch.db"))

# Poll loop cadence.
# - INTERVAL_SECONDS: time between cycle starts
# - SOURCE_DELAY_SECONDS: pause between two sources of one cycle
# - FETCH_LIMIT: newest items considered per fetch
_poll = _CONFIG.get("poll", {})
POLL_INTERVAL_SECONDS = float(_poll.get("interval_seconds", 60))
SOURCE_DELAY_SECONDS = float(_poll.get("source_delay_seconds", 1))
FETCH_LIMIT = int(_poll.get("fetch_limit", 10))
FETCH_TIMEOUT_SECONDS = float(_poll.get("fetch_timeout_seconds", 10))

# Interchangeable Nitter instances, tried in order and rotated on failure.
ENDPOINTS = [str(url) for url in _CONFIG.get("endpoints", []) if url]

_fetcher = _CONFIG.get("fetcher", {})
CANONICAL_BASE = _fetcher.get("canonical_base", "https://x.com")
USER_AGENT = _fetcher.get("user_agent", "Mozilla/5.0 (compatible; tweetwatch/1.0)")

# Delivery records older than this are purged on a timer.
_retention = _CONFIG.get("retention", {})
RETENTION_DAYS = int(_retention.get("days", 7))
RETENTION_INTERVAL_HOURS = float(_retention.get("interval_hours", 24))

# Notification method switches adapters without changing core logic.
_notifications = _CONFIG.get("notifications", {})
NOTIFICATION_METHOD = _notifications.get("notification_method", "telethon")
LINK_PREVIEW = bool(_notifications.get("link_preview", True))

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
