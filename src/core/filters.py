"""Keyword matching and per-subscriber alert decisions (core domain)."""

from __future__ import annotations

from typing import Iterable, List

from core.models import AlertSettings, Decision, Item, ItemType, Keyword

_TYPE_GATES = {
    ItemType.RETWEET: ("alert_retweets", "retweets disabled"),
    ItemType.QUOTE: ("alert_quotes", "quotes disabled"),
    ItemType.REPLY: ("alert_replies", "replies disabled"),
}


def match_keywords(text: str, keywords: Iterable[Keyword]) -> List[str]:
    """Return the patterns contained in ``text``.

    Matching is plain substring containment; case sensitivity is decided per
    keyword. Patterns are reported as stored.
    """

    lowered = text.lower()
    matched: List[str] = []
    for keyword in keywords:
        if keyword.case_sensitive:
            hit = keyword.pattern in text
        else:
            hit = keyword.pattern.lower() in lowered
        if hit:
            matched.append(keyword.pattern)
    return matched


def evaluate(item: Item, settings: AlertSettings, keywords: Iterable[Keyword]) -> Decision:
    """Decide whether one item should be sent to one subscriber.

    Order of checks:
    - paused subscribers receive nothing
    - retweets/quotes/replies are dropped when their gate is off
    - keyword matches are computed regardless of type
    - keywords-only mode requires at least one match
    """

    if settings.paused:
        return Decision(send=False, reason="alerts paused")

    gate = _TYPE_GATES.get(item.item_type)
    if gate is not None:
        flag, reason = gate
        if not getattr(settings, flag):
            return Decision(send=False, reason=reason)

    matched = match_keywords(item.text, keywords)

    if settings.keywords_only and not matched:
        return Decision(send=False, reason="no keyword match (keywords_only mode)")

    if matched:
        reason = f"matched keywords: {', '.join(matched)}"
    else:
        reason = "unfiltered"
    return Decision(send=True, reason=reason, matched_keywords=tuple(matched))
