"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from core.errors import ConfigurationError


class ItemType(str, Enum):
    """Classification of a fetched post."""

    ORIGINAL = "original"
    RETWEET = "retweet"
    QUOTE = "quote"
    REPLY = "reply"

    @property
    def emoji(self) -> str:
        return _ITEM_TYPE_BADGES[self][0]

    @property
    def label(self) -> str:
        return _ITEM_TYPE_BADGES[self][1]


_ITEM_TYPE_BADGES = {
    ItemType.ORIGINAL: ("🐦", "Tweet"),
    ItemType.RETWEET: ("🔁", "Retweet"),
    ItemType.QUOTE: ("💬", "Quote Tweet"),
    ItemType.REPLY: ("↩️", "Reply"),
}


@dataclass(frozen=True)
class Item:
    """One fetched post. Immutable once fetched."""

    item_id: str
    text: str
    created_at: Optional[datetime]
    item_type: ItemType
    author: str
    link: str
    mentions: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Source:
    """A watched account with its global ingestion cursor."""

    handle: str
    last_item_id: Optional[str] = None


@dataclass(frozen=True)
class Subscription:
    """A subscriber's interest in a source.

    ``since_id`` is the subscriber-local cursor override: items that are not
    newer than it are never delivered to this subscriber.
    """

    subscriber_id: int
    handle: str
    since_id: Optional[str] = None


@dataclass(frozen=True)
class Keyword:
    subscriber_id: int
    pattern: str
    case_sensitive: bool = False


@dataclass(frozen=True)
class AlertSettings:
    """Per-subscriber alert switches. Defaults apply until a value is stored."""

    alert_retweets: bool = True
    alert_quotes: bool = True
    alert_replies: bool = True
    keywords_only: bool = False
    paused: bool = False
    telegram_enabled: bool = True


class SettingName(str, Enum):
    """Closed set of settings a subscriber may change."""

    ALERT_RETWEETS = "alert_retweets"
    ALERT_QUOTES = "alert_quotes"
    ALERT_REPLIES = "alert_replies"
    KEYWORDS_ONLY = "keywords_only"
    PAUSED = "paused"
    TELEGRAM_ENABLED = "telegram_enabled"

    @classmethod
    def parse(cls, raw: str) -> "SettingName":
        """Resolve a setting from its name or a front-end alias."""

        key = raw.strip().lower()
        try:
            return _SETTING_ALIASES[key]
        except KeyError:
            pass
        try:
            return cls(key)
        except ValueError as exc:
            raise ConfigurationError(f"Unknown setting: {raw}") from exc

    def read(self, settings: AlertSettings) -> bool:
        return getattr(settings, self.value)


_SETTING_ALIASES = {
    "retweets": SettingName.ALERT_RETWEETS,
    "rt": SettingName.ALERT_RETWEETS,
    "quotes": SettingName.ALERT_QUOTES,
    "quote": SettingName.ALERT_QUOTES,
    "replies": SettingName.ALERT_REPLIES,
    "reply": SettingName.ALERT_REPLIES,
    "keywordsonly": SettingName.KEYWORDS_ONLY,
    "pause": SettingName.PAUSED,
    "is_paused": SettingName.PAUSED,
    "telegram": SettingName.TELEGRAM_ENABLED,
}


@dataclass(frozen=True)
class Decision:
    """Outcome of evaluating one item for one subscriber."""

    send: bool
    reason: str
    matched_keywords: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Alert:
    """A delivery request handed to notifier adapters."""

    subscriber_id: int
    handle: str
    item: Item
    reason: str
    matched_keywords: Tuple[str, ...] = field(default_factory=tuple)
