"""Telegram notification adapter using the Telethon bot session.

Formats the alert as HTML and sends it to the subscriber's chat.
"""

from __future__ import annotations

import logging

from telethon import errors

from adapters.notification_formatting import format_alert
from core.config import NotificationConfig
from core.models import Alert

LOGGER = logging.getLogger(__name__)


class TelethonNotifier:
    """Notifier adapter that sends messages through a connected Telethon client."""

    def __init__(self, client, config: NotificationConfig) -> None:
        self._client = client
        self._config = config

    async def send(self, alert: Alert) -> bool:
        """Send the formatted alert; returns False if Telegram rejected it."""

        message = format_alert(alert)
        try:
            await self._client.send_message(
                alert.subscriber_id,
                message,
                parse_mode="html",
                link_preview=self._config.link_preview,
            )
        except errors.RPCError as exc:
            LOGGER.error("Telegram send failed to %s: %s", alert.subscriber_id, exc)
            return False
        return True
