"""Per-subscriber fan-out with at-most-once delivery.

This module is integration-agnostic. It only relies on ports for storage and
notifications, enabling other frontends or adapters without changes here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from core.filters import evaluate
from core.handles import is_newer
from core.models import Alert, Item, Subscription
from core.ports import NotifierPort, StoragePort

LOGGER = logging.getLogger(__name__)


@dataclass
class DispatchStats:
    """Counters for one item's fan-out."""

    delivered: int = 0
    already_delivered: int = 0
    filtered: int = 0
    failed: int = 0

    def merge(self, other: "DispatchStats") -> None:
        self.delivered += other.delivered
        self.already_delivered += other.already_delivered
        self.filtered += other.filtered
        self.failed += other.failed


class DeliveryDispatcher:
    """Evaluates an item for every subscriber and notifies the matching ones."""

    def __init__(self, storage: StoragePort, notifier: NotifierPort) -> None:
        self._storage = storage
        self._notifier = notifier

    async def dispatch(self, handle: str, item: Item) -> DispatchStats:
        """Fan one item out to all subscribers of ``handle``."""

        stats = DispatchStats()
        for subscription in self._storage.list_subscribers(handle):
            await self._dispatch_one(subscription, item, stats)
        return stats

    async def _dispatch_one(self, subscription: Subscription, item: Item, stats: DispatchStats) -> None:
        subscriber_id = subscription.subscriber_id

        # The delivery record is the only dedup mechanism; re-polls of an
        # unchanged cursor end here.
        if self._storage.has_delivery(subscriber_id, item.item_id):
            stats.already_delivered += 1
            return

        # Subscribers added after this item was ingested never see it.
        if subscription.since_id is not None and not is_newer(item.item_id, subscription.since_id):
            stats.filtered += 1
            return

        settings = self._storage.get_settings(subscriber_id)
        if not settings.telegram_enabled:
            stats.filtered += 1
            return

        keywords = self._storage.list_keywords(subscriber_id)
        decision = evaluate(item, settings, keywords)
        if not decision.send:
            LOGGER.debug("Skip %s for %s: %s", item.item_id, subscriber_id, decision.reason)
            stats.filtered += 1
            return

        alert = Alert(
            subscriber_id=subscriber_id,
            handle=subscription.handle,
            item=item,
            reason=decision.reason,
            matched_keywords=decision.matched_keywords,
        )
        try:
            sent = await self._notifier.send(alert)
        except Exception:
            LOGGER.exception("Notifier failed for %s (item %s)", subscriber_id, item.item_id)
            sent = False

        if not sent:
            stats.failed += 1
            return

        # Recorded only after the notifier acknowledged delivery.
        self._storage.record_delivery(subscriber_id, item.item_id)
        stats.delivered += 1
        LOGGER.info("Alert sent to %s for @%s (%s)", subscriber_id, subscription.handle, item.item_id)
