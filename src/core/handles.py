"""Helpers for working with source handles and item ids."""

from __future__ import annotations

import re
from typing import List, Optional

from core.errors import InvalidHandleError
from core.models import ItemType

_HANDLE_RE = re.compile(r"^[a-z0-9_]{1,15}$")
_MENTION_RE = re.compile(r"@(\w+)")


def normalize_handle(raw: str) -> str:
    """Return the canonical handle: no leading "@", lowercase."""

    handle = (raw or "").strip().lstrip("@").lower()
    if not _HANDLE_RE.match(handle):
        raise InvalidHandleError(f"Invalid handle: {raw!r}")
    return handle


def item_id_key(item_id: Optional[str]) -> Optional[int]:
    """Return the id as an integer when it is numeric, else None."""

    if item_id is None:
        return None
    text = str(item_id).strip()
    if not text.isdigit():
        return None
    return int(text)


def is_newer(item_id: str, cursor: Optional[str]) -> bool:
    """Return True if the item is newer than the cursor.

    Ids that cannot be compared are treated as newer so they are never
    silently dropped.
    """

    if cursor is None:
        return True
    item_key = item_id_key(item_id)
    cursor_key = item_id_key(cursor)
    if item_key is None or cursor_key is None:
        return True
    return item_key > cursor_key


def max_item_id(current: Optional[str], candidate: Optional[str]) -> Optional[str]:
    """Return whichever comparable id is larger; never moves backwards."""

    candidate_key = item_id_key(candidate)
    if candidate_key is None:
        return current
    current_key = item_id_key(current)
    if current_key is None:
        # A non-numeric stored cursor is replaced by the first numeric id.
        return candidate
    return candidate if candidate_key > current_key else current


def extract_mentions(text: str) -> List[str]:
    """Return unique @mentions in order of appearance, lowercased."""

    mentions: List[str] = []
    for match in _MENTION_RE.finditer(text or ""):
        name = match.group(1).lower()
        if name not in mentions:
            mentions.append(name)
    return mentions


def classify_text(text: str, title: str = "") -> ItemType:
    """Derive the item type from feed text, as Nitter formats it."""

    title = title or ""
    candidates = (text, title)
    if any(c.startswith("RT @") or "RT by @" in c for c in candidates):
        return ItemType.RETWEET
    if any(c.startswith("R to @") for c in candidates):
        return ItemType.REPLY
    if "quoted" in title:
        return ItemType.QUOTE
    return ItemType.ORIGINAL
