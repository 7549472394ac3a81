from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional

from core.errors import FetchError
from core.handles import is_newer, max_item_id
from core.models import (
    Alert,
    AlertSettings,
    Item,
    ItemType,
    Keyword,
    SettingName,
    Source,
    Subscription,
)


class FakeStorage:
    def __init__(self) -> None:
        self.cursors: dict[str, Optional[str]] = {}
        self.subscriptions: dict[tuple[int, str], Subscription] = {}
        self.keywords: dict[int, list[Keyword]] = {}
        self.settings: dict[int, AlertSettings] = {}
        self.deliveries: set[tuple[int, str]] = set()
        self.delivery_writes: list[tuple[int, str]] = []
        self.cursor_history: dict[str, list[Optional[str]]] = {}

    def get_cursor(self, handle: str) -> Optional[str]:
        return self.cursors.get(handle)

    def advance_cursor(self, handle: str, item_id: str) -> Optional[str]:
        new_cursor = max_item_id(self.cursors.get(handle), item_id)
        self.cursors[handle] = new_cursor
        self.cursor_history.setdefault(handle, []).append(new_cursor)
        return new_cursor

    def list_sources(self) -> list[str]:
        return sorted({handle for _, handle in self.subscriptions})

    def get_source(self, handle: str) -> Optional[Source]:
        if handle not in self.cursors and handle not in self.list_sources():
            return None
        return Source(handle=handle, last_item_id=self.cursors.get(handle))

    def add_subscription(self, subscriber_id: int, handle: str, since_id: Optional[str]) -> bool:
        created = (subscriber_id, handle) not in self.subscriptions
        self.subscriptions[(subscriber_id, handle)] = Subscription(subscriber_id, handle, since_id)
        return created

    def remove_subscription(self, subscriber_id: int, handle: str) -> bool:
        removed = self.subscriptions.pop((subscriber_id, handle), None) is not None
        if removed and handle not in self.list_sources():
            self.cursors.pop(handle, None)
        return removed

    def list_subscriptions(self, subscriber_id: int) -> list[Subscription]:
        return [sub for (sid, _), sub in sorted(self.subscriptions.items()) if sid == subscriber_id]

    def list_subscribers(self, handle: str) -> list[Subscription]:
        return [sub for (_, h), sub in sorted(self.subscriptions.items()) if h == handle]

    def add_keyword(self, subscriber_id: int, pattern: str, case_sensitive: bool = False) -> bool:
        stored = pattern if case_sensitive else pattern.lower()
        existing = self.keywords.setdefault(subscriber_id, [])
        if any(kw.pattern == stored for kw in existing):
            return False
        existing.append(Keyword(subscriber_id, stored, case_sensitive))
        return True

    def remove_keyword(self, subscriber_id: int, pattern: str) -> bool:
        existing = self.keywords.get(subscriber_id, [])
        kept = [kw for kw in existing if kw.pattern.lower() != pattern.lower()]
        self.keywords[subscriber_id] = kept
        return len(kept) != len(existing)

    def list_keywords(self, subscriber_id: int) -> list[Keyword]:
        return list(self.keywords.get(subscriber_id, []))

    def get_settings(self, subscriber_id: int) -> AlertSettings:
        return self.settings.setdefault(subscriber_id, AlertSettings())

    def update_setting(self, subscriber_id: int, name: SettingName, value: bool) -> None:
        current = self.get_settings(subscriber_id)
        self.settings[subscriber_id] = replace(current, **{name.value: value})

    def has_delivery(self, subscriber_id: int, item_id: str) -> bool:
        return (subscriber_id, item_id) in self.deliveries

    def record_delivery(self, subscriber_id: int, item_id: str) -> bool:
        self.delivery_writes.append((subscriber_id, item_id))
        if (subscriber_id, item_id) in self.deliveries:
            return False
        self.deliveries.add((subscriber_id, item_id))
        return True

    def purge_deliveries(self, older_than_days: int) -> int:
        removed = len(self.deliveries)
        self.deliveries.clear()
        return removed


class FakeNotifier:
    def __init__(self, fail_for: Optional[set[int]] = None, raise_for: Optional[set[int]] = None) -> None:
        self.sent: list[Alert] = []
        self._fail_for = fail_for or set()
        self._raise_for = raise_for or set()

    async def send(self, alert: Alert) -> bool:
        if alert.subscriber_id in self._raise_for:
            raise RuntimeError("transport down")
        if alert.subscriber_id in self._fail_for:
            return False
        self.sent.append(alert)
        return True

    def sent_to(self, subscriber_id: int) -> list[str]:
        return [alert.item.item_id for alert in self.sent if alert.subscriber_id == subscriber_id]


class FakeFetcher:
    """Serves a fixed timeline; endpoints listed in ``failing`` raise."""

    def __init__(self, timeline: Optional[dict[str, list[Item]]] = None, failing: Optional[dict[str, Exception]] = None) -> None:
        self.timeline = timeline or {}
        self.failing = failing or {}
        self.calls: list[tuple[str, str, Optional[str]]] = []

    async def fetch(self, endpoint: str, handle: str, since_id: Optional[str], limit: int) -> list[Item]:
        self.calls.append((endpoint, handle, since_id))
        error = self.failing.get(endpoint)
        if error is not None:
            raise error
        items = [item for item in self.timeline.get(handle, []) if is_newer(item.item_id, since_id)]
        return items[-limit:]


def make_item(
    item_id: str,
    text: str = "hello world",
    item_type: ItemType = ItemType.ORIGINAL,
    author: str = "abc",
) -> Item:
    return Item(
        item_id=item_id,
        text=text,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        item_type=item_type,
        author=author,
        link=f"https://x.com/{author}/status/{item_id}",
    )


def network_error() -> FetchError:
    return FetchError("connection refused")
