from __future__ import annotations

from adapters.notification_formatting import format_alert
from core.models import Alert, ItemType

from fakes import make_item


def _alert(text: str, item_type: ItemType = ItemType.ORIGINAL, matched=()) -> Alert:
    return Alert(
        subscriber_id=1,
        handle="abc",
        item=make_item("42", text=text, item_type=item_type),
        reason="unfiltered",
        matched_keywords=tuple(matched),
    )


def test_format_alert_escapes_user_text() -> None:
    message = format_alert(_alert("<b>1 < 2 & 3</b>"))
    assert "&lt;b&gt;1 &lt; 2 &amp; 3&lt;/b&gt;" in message
    assert "<b>@abc</b>" in message


def test_format_alert_uses_type_badge() -> None:
    message = format_alert(_alert("ok", item_type=ItemType.QUOTE))
    assert message.startswith("💬 <b>Quote Tweet Alert</b>")


def test_format_alert_lists_matched_keywords_and_link() -> None:
    message = format_alert(_alert("mint now", matched=["mint"]))
    assert "<i>Matched: mint</i>" in message
    assert '<a href="https://x.com/abc/status/42">View Tweet</a>' in message


def test_format_alert_without_matches_has_no_matched_line() -> None:
    assert "Matched" not in format_alert(_alert("gm"))
