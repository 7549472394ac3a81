"""Shared notification formatting helpers.

Keeping formatting here prevents drift between adapters and keeps messages
consistent regardless of delivery channel. Telegram parses these messages as
HTML, so every user-supplied value is escaped.
"""

from __future__ import annotations

import html

from core.models import Alert


def format_alert(alert: Alert) -> str:
    """Create the HTML notification body for one alert."""

    item = alert.item
    item_type = item.item_type
    author = html.escape(item.author or alert.handle)
    text = html.escape(item.text)

    lines = [
        f"{item_type.emoji} <b>{html.escape(item_type.label)} Alert</b>",
        "",
        f"👤 <b>@{author}</b>",
        f"📝 {text}",
        "",
    ]

    if alert.matched_keywords:
        matched = html.escape(", ".join(alert.matched_keywords))
        lines.append(f"🔑 <i>Matched: {matched}</i>")

    if item.link:
        safe_link = html.escape(item.link, quote=True)
        lines.extend(["", f"🔗 <a href=\"{safe_link}\">View Tweet</a>"])

    return "\n".join(lines)
