"""Nitter RSS timeline adapter.

Nitter instances expose ``/<handle>/rss`` for every public account, which
lets us follow timelines without API credentials. This keeps RSS and HTTP
details out of the core pipeline.
"""

from __future__ import annotations

import asyncio
import calendar
import html
import http.client
import re
import urllib.error
import urllib.request
from datetime import datetime, timezone
from typing import List, Optional

import feedparser

from core.errors import FetchError, UnknownSourceError
from core.handles import classify_text, extract_mentions, is_newer, item_id_key
from core.models import Item

_TAG_RE = re.compile(r"<[^>]*>")
DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; tweetwatch/1.0)"


def strip_html(value: str) -> str:
    return html.unescape(_TAG_RE.sub("", value or "")).strip()


def _item_id_from_entry(entry) -> Optional[str]:
    link = entry.get("link") or ""
    if "/status/" in link:
        tail = link.split("/status/", 1)[1]
        return tail.split("#", 1)[0].split("?", 1)[0].strip("/") or None
    return entry.get("id") or entry.get("guid")


def _published_at(entry) -> Optional[datetime]:
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    if not parsed:
        return None
    return datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc)


def _oldest_first_key(item: Item) -> tuple:
    # Numeric ids order exactly; anything else falls back to the timestamp.
    key = item_id_key(item.item_id)
    stamp = item.created_at.timestamp() if item.created_at else 0.0
    return (key if key is not None else -1, stamp)


class NitterRssFetcher:
    """FetcherPort implementation backed by Nitter RSS feeds."""

    def __init__(
        self,
        canonical_base: str = "https://x.com",
        user_agent: str = DEFAULT_USER_AGENT,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._canonical_base = canonical_base.rstrip("/")
        self._user_agent = user_agent
        self._timeout = timeout_seconds

    async def fetch(
        self,
        endpoint: str,
        handle: str,
        since_id: Optional[str],
        limit: int,
    ) -> List[Item]:
        """Return up to ``limit`` items newer than ``since_id``, oldest first."""

        url = f"{endpoint.rstrip('/')}/{handle}/rss"
        payload = await asyncio.to_thread(self._download, url, handle)
        return self.parse(payload, endpoint, handle, since_id, limit)

    def _download(self, url: str, handle: str) -> bytes:
        request = urllib.request.Request(url, method="GET")
        request.add_header("User-Agent", self._user_agent)
        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                return response.read()
        except urllib.error.HTTPError as exc:
            if exc.code == 404:
                raise UnknownSourceError(f"@{handle} not found at {url}") from exc
            raise FetchError(f"HTTP {exc.code} from {url}") from exc
        except (urllib.error.URLError, http.client.HTTPException, OSError) as exc:
            raise FetchError(f"Could not reach {url}: {exc}") from exc

    def parse(
        self,
        payload: bytes,
        endpoint: str,
        handle: str,
        since_id: Optional[str],
        limit: int,
    ) -> List[Item]:
        """Turn an RSS document into items (oldest first)."""

        feed = feedparser.parse(payload)
        if feed.bozo and not feed.entries:
            raise FetchError(f"Unparseable feed for @{handle}: {feed.get('bozo_exception')}")

        # RSS lists newest first; limit applies to the newest entries.
        items: List[Item] = []
        for entry in feed.entries[: max(limit, 0)]:
            item = self._build_item(entry, endpoint, handle)
            if item is None:
                continue
            if not is_newer(item.item_id, since_id):
                continue
            items.append(item)

        items.sort(key=_oldest_first_key)
        return items

    def _build_item(self, entry, endpoint: str, handle: str) -> Optional[Item]:
        item_id = _item_id_from_entry(entry)
        if not item_id:
            return None

        title = entry.get("title") or ""
        text = strip_html(entry.get("summary") or entry.get("description") or title)
        link = entry.get("link") or ""
        endpoint = endpoint.rstrip("/")
        if link.startswith(endpoint):
            link = self._canonical_base + link[len(endpoint):]
        link = link.split("#", 1)[0]
        if not link:
            link = f"{self._canonical_base}/{handle}/status/{item_id}"

        return Item(
            item_id=item_id,
            text=text,
            created_at=_published_at(entry),
            item_type=classify_text(text, title),
            author=handle,
            link=link,
            mentions=tuple(extract_mentions(text)),
        )
