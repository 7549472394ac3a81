"""Telegram Bot API notification adapter.

Uses the HTTP Bot API for delivery, which works without a Telethon session.
"""

from __future__ import annotations

import asyncio
import json
import logging
import urllib.error
import urllib.request

from adapters.notification_formatting import format_alert
from core.config import NotificationConfig
from core.models import Alert

LOGGER = logging.getLogger(__name__)


class TelegramBotNotifier:
    """Notifier adapter that sends messages via the Telegram Bot API."""

    def __init__(self, bot_token: str, config: NotificationConfig, timeout_seconds: float = 10.0) -> None:
        self._bot_token = bot_token
        self._config = config
        self._timeout = timeout_seconds

    def _endpoint(self) -> str:
        # The Bot API endpoint is deterministic and derived from the token.
        return f"https://api.telegram.org/bot{self._bot_token}/sendMessage"

    def _build_request(self, alert: Alert) -> urllib.request.Request:
        payload = {
            "chat_id": alert.subscriber_id,
            "text": format_alert(alert),
            "parse_mode": "HTML",
            "disable_web_page_preview": not self._config.link_preview,
        }
        data = json.dumps(payload).encode("utf-8")
        request = urllib.request.Request(self._endpoint(), data=data, method="POST")
        request.add_header("Content-Type", "application/json")
        return request

    def _post(self, request: urllib.request.Request) -> bool:
        try:
            with urllib.request.urlopen(request, timeout=self._timeout):
                return True
        except urllib.error.HTTPError as e:
            body = e.read().decode("utf-8", errors="replace")
            LOGGER.error("Bot API error %s: %s", e.code, body)
        except (urllib.error.URLError, OSError) as e:
            LOGGER.error("Bot API unreachable: %s", e)
        return False

    async def send(self, alert: Alert) -> bool:
        """Send the formatted alert via the Bot API."""

        request = self._build_request(alert)
        return await asyncio.to_thread(self._post, request)
