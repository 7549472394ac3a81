from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta, timezone

from adapters.sqlite_storage import SQLiteStorage
from core.models import AlertSettings, SettingName, Source


def _storage(tmp_path) -> SQLiteStorage:
    storage = SQLiteStorage(str(tmp_path / "data" / "test.db"))
    storage.init_db()
    return storage


def test_cursor_only_moves_forward(tmp_path) -> None:
    storage = _storage(tmp_path)
    assert storage.get_cursor("abc") is None

    assert storage.advance_cursor("abc", "100") == "100"
    assert storage.advance_cursor("abc", "99") == "100"
    assert storage.advance_cursor("abc", "not-a-number") == "100"
    assert storage.advance_cursor("abc", "1000") == "1000"
    assert storage.get_cursor("abc") == "1000"


def test_cursor_compares_numerically_not_lexically(tmp_path) -> None:
    storage = _storage(tmp_path)
    storage.advance_cursor("abc", "9")
    storage.advance_cursor("abc", "10")
    assert storage.get_cursor("abc") == "10"


def test_subscription_upsert_and_listing(tmp_path) -> None:
    storage = _storage(tmp_path)
    assert storage.add_subscription(1, "abc", None)
    assert not storage.add_subscription(1, "abc", "5")
    assert storage.add_subscription(2, "abc", None)
    assert storage.add_subscription(2, "xyz", None)

    assert storage.list_sources() == ["abc", "xyz"]
    assert [sub.subscriber_id for sub in storage.list_subscribers("abc")] == [1, 2]
    assert storage.list_subscribers("abc")[0].since_id == "5"
    assert [sub.handle for sub in storage.list_subscriptions(2)] == ["abc", "xyz"]


def test_removing_last_subscriber_drops_source_cursor(tmp_path) -> None:
    storage = _storage(tmp_path)
    storage.add_subscription(1, "abc", None)
    storage.add_subscription(2, "abc", None)
    storage.advance_cursor("abc", "42")

    assert storage.remove_subscription(1, "abc")
    assert storage.get_cursor("abc") == "42"
    assert storage.get_source("abc") == Source(handle="abc", last_item_id="42")

    assert storage.remove_subscription(2, "abc")
    assert storage.get_cursor("abc") is None
    assert storage.get_source("abc") is None
    assert not storage.remove_subscription(2, "abc")


def test_keywords_are_lowercased_unless_case_sensitive(tmp_path) -> None:
    storage = _storage(tmp_path)
    assert storage.add_keyword(1, "Mint")
    assert not storage.add_keyword(1, "mint")
    assert storage.add_keyword(1, "ETH", case_sensitive=True)

    patterns = {(kw.pattern, kw.case_sensitive) for kw in storage.list_keywords(1)}
    assert patterns == {("mint", False), ("ETH", True)}

    assert storage.remove_keyword(1, "eth")
    assert not storage.remove_keyword(1, "eth")


def test_settings_defaults_and_updates(tmp_path) -> None:
    storage = _storage(tmp_path)
    assert storage.get_settings(7) == AlertSettings()

    storage.update_setting(7, SettingName.KEYWORDS_ONLY, True)
    storage.update_setting(7, SettingName.ALERT_REPLIES, False)

    current = storage.get_settings(7)
    assert current.keywords_only
    assert not current.alert_replies
    assert storage.get_settings(8) == AlertSettings()


def test_delivery_insert_if_absent(tmp_path) -> None:
    storage = _storage(tmp_path)
    assert not storage.has_delivery(1, "100")
    assert storage.record_delivery(1, "100")
    assert not storage.record_delivery(1, "100")
    assert storage.has_delivery(1, "100")
    assert not storage.has_delivery(2, "100")


def test_purge_removes_only_old_deliveries(tmp_path) -> None:
    storage = _storage(tmp_path)
    storage.record_delivery(1, "new")
    old = (datetime.now(timezone.utc) - timedelta(days=10)).isoformat()
    with sqlite3.connect(str(tmp_path / "data" / "test.db")) as conn:
        conn.execute(
            "INSERT INTO deliveries (subscriber_id, item_id, delivered_at) VALUES (?, ?, ?)",
            (1, "old", old),
        )

    assert storage.purge_deliveries(7) == 1
    assert storage.has_delivery(1, "new")
    assert not storage.has_delivery(1, "old")
