"""Subscriber-facing operations used by command frontends.

Handles arrive as free text and are normalized here before they reach
storage, so every frontend shares the same rules.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from core.fetching import FailoverFetcher
from core.handles import max_item_id, normalize_handle
from core.models import AlertSettings, Keyword, SettingName, Source, Subscription
from core.ports import StoragePort
from core.scheduler import PollScheduler, SourceCheck

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubscriberStatus:
    subscriptions: int
    keywords: int
    settings: AlertSettings


class SubscriptionService:
    """Thin facade over storage, fetcher and scheduler."""

    def __init__(
        self,
        storage: StoragePort,
        fetcher: FailoverFetcher,
        scheduler: PollScheduler,
    ) -> None:
        self._storage = storage
        self._fetcher = fetcher
        self._scheduler = scheduler

    async def add_subscription(self, subscriber_id: int, raw_handle: str) -> Tuple[str, bool]:
        """Watch a source. Returns (handle, created).

        The source is verified once against the upstream; UnknownSourceError
        and SourceUnavailableError propagate to the caller. The new
        subscriber starts at the newest known item so no history is replayed.
        """

        handle = normalize_handle(raw_handle)
        latest = await self._fetcher.fetch(handle, None, 1)
        since_id = self._storage.get_cursor(handle)
        for item in latest:
            since_id = max_item_id(since_id, item.item_id)

        created = self._storage.add_subscription(subscriber_id, handle, since_id)
        LOGGER.info("Subscriber %s now watching @%s (since %s)", subscriber_id, handle, since_id)
        return handle, created

    def remove_subscription(self, subscriber_id: int, raw_handle: str) -> bool:
        handle = normalize_handle(raw_handle)
        removed = self._storage.remove_subscription(subscriber_id, handle)
        if removed:
            LOGGER.info("Subscriber %s stopped watching @%s", subscriber_id, handle)
        return removed

    def list_subscriptions(self, subscriber_id: int) -> List[Subscription]:
        return self._storage.list_subscriptions(subscriber_id)

    def add_keyword(self, subscriber_id: int, pattern: str, case_sensitive: bool = False) -> bool:
        pattern = pattern.strip()
        if not pattern:
            raise ValueError("Keyword must not be empty")
        return self._storage.add_keyword(subscriber_id, pattern, case_sensitive)

    def remove_keyword(self, subscriber_id: int, pattern: str) -> bool:
        return self._storage.remove_keyword(subscriber_id, pattern.strip())

    def list_keywords(self, subscriber_id: int) -> List[Keyword]:
        return self._storage.list_keywords(subscriber_id)

    def get_settings(self, subscriber_id: int) -> AlertSettings:
        return self._storage.get_settings(subscriber_id)

    def update_setting(self, subscriber_id: int, name: str, value: bool) -> SettingName:
        """Set a named setting. Unknown names raise ConfigurationError."""

        setting = SettingName.parse(name)
        self._storage.update_setting(subscriber_id, setting, bool(value))
        return setting

    def toggle_setting(self, subscriber_id: int, name: str) -> Tuple[SettingName, bool]:
        setting = SettingName.parse(name)
        new_value = not setting.read(self._storage.get_settings(subscriber_id))
        self._storage.update_setting(subscriber_id, setting, new_value)
        return setting, new_value

    def pause(self, subscriber_id: int) -> None:
        self._storage.update_setting(subscriber_id, SettingName.PAUSED, True)

    def resume(self, subscriber_id: int) -> None:
        self._storage.update_setting(subscriber_id, SettingName.PAUSED, False)

    def status(self, subscriber_id: int) -> SubscriberStatus:
        return SubscriberStatus(
            subscriptions=len(self._storage.list_subscriptions(subscriber_id)),
            keywords=len(self._storage.list_keywords(subscriber_id)),
            settings=self._storage.get_settings(subscriber_id),
        )

    async def force_check(self, raw_handle: str) -> SourceCheck:
        return await self._scheduler.force_check(raw_handle)

    def source(self, raw_handle: str) -> Optional[Source]:
        return self._storage.get_source(normalize_handle(raw_handle))
