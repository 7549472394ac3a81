"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for storage, fetching and notification
adapters so that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import List, Optional, Protocol

from core.models import Alert, AlertSettings, Item, Keyword, SettingName, Source, Subscription


class StoragePort(Protocol):
    """Storage operations required by the core pipeline."""

    def get_cursor(self, handle: str) -> Optional[str]:
        ...

    def advance_cursor(self, handle: str, item_id: str) -> Optional[str]:
        ...

    def list_sources(self) -> List[str]:
        ...

    def get_source(self, handle: str) -> Optional[Source]:
        ...

    def add_subscription(self, subscriber_id: int, handle: str, since_id: Optional[str]) -> bool:
        ...

    def remove_subscription(self, subscriber_id: int, handle: str) -> bool:
        ...

    def list_subscriptions(self, subscriber_id: int) -> List[Subscription]:
        ...

    def list_subscribers(self, handle: str) -> List[Subscription]:
        ...

    def add_keyword(self, subscriber_id: int, pattern: str, case_sensitive: bool = False) -> bool:
        ...

    def remove_keyword(self, subscriber_id: int, pattern: str) -> bool:
        ...

    def list_keywords(self, subscriber_id: int) -> List[Keyword]:
        ...

    def get_settings(self, subscriber_id: int) -> AlertSettings:
        ...

    def update_setting(self, subscriber_id: int, name: SettingName, value: bool) -> None:
        ...

    def has_delivery(self, subscriber_id: int, item_id: str) -> bool:
        ...

    def record_delivery(self, subscriber_id: int, item_id: str) -> bool:
        ...

    def purge_deliveries(self, older_than_days: int) -> int:
        ...


class FetcherPort(Protocol):
    """One timeline backend (Nitter RSS, API client, ...)."""

    async def fetch(
        self,
        endpoint: str,
        handle: str,
        since_id: Optional[str],
        limit: int,
    ) -> List[Item]:
        """Return items newer than ``since_id``, oldest first.

        Raises FetchError on network/parse failures and UnknownSourceError
        when the endpoint reports the source does not exist.
        """
        ...


class NotifierPort(Protocol):
    """Notification operations required by the core pipeline."""

    async def send(self, alert: Alert) -> bool:
        ...
