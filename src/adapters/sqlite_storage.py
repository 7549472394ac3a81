"""SQLite storage adapter.

Implements the core StoragePort using a simple SQLite database.
"""

from __future__ import annotations

import os
import sqlite3
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from core.handles import max_item_id
from core.models import AlertSettings, Keyword, SettingName, Source, Subscription

_SETTING_COLUMNS = [name.value for name in SettingName]


class SQLiteStorage:
    """Thin SQLite wrapper that satisfies the StoragePort contract."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - sources: per-source global cursor (last_item_id)
        - subscriptions: (subscriber, handle) links with a local cursor override
        - keywords: per-subscriber substring patterns
        - settings: per-subscriber alert switches
        - deliveries: append-only dedup markers, pruned by age
        """

        directory = os.path.dirname(self._db_path)
        if directory and self._db_path != ":memory:":
            os.makedirs(directory, exist_ok=True)

        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode = WAL")
            # One cursor per source, shared by every subscriber, so each
            # account is fetched once per cycle.
            # last_item_id is TEXT because upstream ids are not guaranteed to
            # be numeric; comparison happens in Python.
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS sources (
                    handle TEXT PRIMARY KEY,
                    last_item_id TEXT,
                    updated_at TIMESTAMP
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS subscriptions (
                    subscriber_id INTEGER NOT NULL,
                    handle TEXT NOT NULL,
                    since_id TEXT,
                    created_at TIMESTAMP NOT NULL,
                    PRIMARY KEY (subscriber_id, handle)
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS keywords (
                    subscriber_id INTEGER NOT NULL,
                    pattern TEXT NOT NULL,
                    case_sensitive INTEGER NOT NULL DEFAULT 0,
                    PRIMARY KEY (subscriber_id, pattern)
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS settings (
                    subscriber_id INTEGER PRIMARY KEY,
                    alert_retweets INTEGER NOT NULL DEFAULT 1,
                    alert_quotes INTEGER NOT NULL DEFAULT 1,
                    alert_replies INTEGER NOT NULL DEFAULT 1,
                    keywords_only INTEGER NOT NULL DEFAULT 0,
                    paused INTEGER NOT NULL DEFAULT 0,
                    telegram_enabled INTEGER NOT NULL DEFAULT 1
                )
                """
            )
            # Existence of a row means "already delivered"; nothing else
            # prevents a second notification.
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS deliveries (
                    subscriber_id INTEGER NOT NULL,
                    item_id TEXT NOT NULL,
                    delivered_at TIMESTAMP NOT NULL,
                    PRIMARY KEY (subscriber_id, item_id)
                )
                """
            )

    # Cursor

    def get_cursor(self, handle: str) -> Optional[str]:
        """Return the last processed item id for a source, if any."""

        with self._connect() as conn:
            row = conn.execute(
                "SELECT last_item_id FROM sources WHERE handle = ?",
                (handle,),
            ).fetchone()
        return row["last_item_id"] if row else None

    def advance_cursor(self, handle: str, item_id: str) -> Optional[str]:
        """Move the cursor forward to ``item_id`` if it is newer.

        Returns the stored cursor after the update.
        """

        now = datetime.now(timezone.utc).isoformat()
        with self._connect() as conn:
            row = conn.execute(
                "SELECT last_item_id FROM sources WHERE handle = ?",
                (handle,),
            ).fetchone()
            current = row["last_item_id"] if row else None
            new_cursor = max_item_id(current, item_id)
            if new_cursor == current and row is not None:
                return current
            conn.execute(
                """
                INSERT INTO sources (handle, last_item_id, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(handle) DO UPDATE SET
                    last_item_id = excluded.last_item_id,
                    updated_at = excluded.updated_at
                """,
                (handle, new_cursor, now),
            )
        return new_cursor

    def list_sources(self) -> List[str]:
        """Return every handle with at least one subscriber."""

        with self._connect() as conn:
            rows = conn.execute(
                "SELECT DISTINCT handle FROM subscriptions ORDER BY handle"
            ).fetchall()
        return [row["handle"] for row in rows]

    def get_source(self, handle: str) -> Optional[Source]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT handle, last_item_id FROM sources WHERE handle = ?",
                (handle,),
            ).fetchone()
        if row is None:
            return None
        return Source(
            handle=row["handle"],
            last_item_id=row["last_item_id"],
        )

    # Subscriptions

    def add_subscription(self, subscriber_id: int, handle: str, since_id: Optional[str]) -> bool:
        """Insert or refresh a subscription. Returns True when newly created."""

        now = datetime.now(timezone.utc).isoformat()
        with self._connect() as conn:
            existing = conn.execute(
                "SELECT 1 FROM subscriptions WHERE subscriber_id = ? AND handle = ?",
                (subscriber_id, handle),
            ).fetchone()
            conn.execute(
                """
                INSERT INTO subscriptions (subscriber_id, handle, since_id, created_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(subscriber_id, handle) DO UPDATE SET since_id = excluded.since_id
                """,
                (subscriber_id, handle, since_id, now),
            )
            conn.execute(
                "INSERT OR IGNORE INTO sources (handle) VALUES (?)",
                (handle,),
            )
        return existing is None

    def remove_subscription(self, subscriber_id: int, handle: str) -> bool:
        """Delete a subscription; drop the source once nobody watches it."""

        with self._connect() as conn:
            cur = conn.execute(
                "DELETE FROM subscriptions WHERE subscriber_id = ? AND handle = ?",
                (subscriber_id, handle),
            )
            removed = cur.rowcount > 0
            if removed:
                conn.execute(
                    """
                    DELETE FROM sources WHERE handle = ?
                    AND NOT EXISTS (SELECT 1 FROM subscriptions WHERE handle = ?)
                    """,
                    (handle, handle),
                )
        return removed

    def list_subscriptions(self, subscriber_id: int) -> List[Subscription]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM subscriptions WHERE subscriber_id = ? ORDER BY handle",
                (subscriber_id,),
            ).fetchall()
        return [_subscription(row) for row in rows]

    def list_subscribers(self, handle: str) -> List[Subscription]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM subscriptions WHERE handle = ? ORDER BY subscriber_id",
                (handle,),
            ).fetchall()
        return [_subscription(row) for row in rows]

    # Keywords

    def add_keyword(self, subscriber_id: int, pattern: str, case_sensitive: bool = False) -> bool:
        """Insert a keyword; case-insensitive patterns are stored lowercased."""

        stored = pattern if case_sensitive else pattern.lower()
        with self._connect() as conn:
            cur = conn.execute(
                """
                INSERT INTO keywords (subscriber_id, pattern, case_sensitive)
                VALUES (?, ?, ?)
                ON CONFLICT(subscriber_id, pattern) DO NOTHING
                """,
                (subscriber_id, stored, 1 if case_sensitive else 0),
            )
            return cur.rowcount > 0

    def remove_keyword(self, subscriber_id: int, pattern: str) -> bool:
        with self._connect() as conn:
            cur = conn.execute(
                "DELETE FROM keywords WHERE subscriber_id = ? AND LOWER(pattern) = LOWER(?)",
                (subscriber_id, pattern),
            )
            return cur.rowcount > 0

    def list_keywords(self, subscriber_id: int) -> List[Keyword]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM keywords WHERE subscriber_id = ? ORDER BY pattern",
                (subscriber_id,),
            ).fetchall()
        return [
            Keyword(
                subscriber_id=row["subscriber_id"],
                pattern=row["pattern"],
                case_sensitive=bool(row["case_sensitive"]),
            )
            for row in rows
        ]

    # Settings

    def get_settings(self, subscriber_id: int) -> AlertSettings:
        """Return settings, creating the default row on first access."""

        with self._connect() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO settings (subscriber_id) VALUES (?)",
                (subscriber_id,),
            )
            row = conn.execute(
                "SELECT * FROM settings WHERE subscriber_id = ?",
                (subscriber_id,),
            ).fetchone()
        return AlertSettings(**{column: bool(row[column]) for column in _SETTING_COLUMNS})

    def update_setting(self, subscriber_id: int, name: SettingName, value: bool) -> None:
        # Column names come from the closed SettingName enum, never from input.
        column = SettingName(name).value
        with self._connect() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO settings (subscriber_id) VALUES (?)",
                (subscriber_id,),
            )
            conn.execute(
                f"UPDATE settings SET {column} = ? WHERE subscriber_id = ?",
                (1 if value else 0, subscriber_id),
            )

    # Deliveries

    def has_delivery(self, subscriber_id: int, item_id: str) -> bool:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM deliveries WHERE subscriber_id = ? AND item_id = ?",
                (subscriber_id, item_id),
            ).fetchone()
        return row is not None

    def record_delivery(self, subscriber_id: int, item_id: str) -> bool:
        """Insert a delivery marker if absent. Returns True when inserted."""

        now = datetime.now(timezone.utc)
        with self._connect() as conn:
            cur = conn.execute(
                """
                INSERT OR IGNORE INTO deliveries (subscriber_id, item_id, delivered_at)
                VALUES (?, ?, ?)
                """,
                (subscriber_id, item_id, now.isoformat()),
            )
            return cur.rowcount > 0

    def purge_deliveries(self, older_than_days: int) -> int:
        """Delete old delivery markers and return the number removed."""

        cutoff = datetime.now(timezone.utc) - timedelta(days=older_than_days)
        with self._connect() as conn:
            cur = conn.execute(
                "DELETE FROM deliveries WHERE delivered_at < ?",
                (cutoff.isoformat(),),
            )
            return cur.rowcount


def _subscription(row: sqlite3.Row) -> Subscription:
    return Subscription(
        subscriber_id=row["subscriber_id"],
        handle=row["handle"],
        since_id=row["since_id"],
    )
