from __future__ import annotations

import pytest

from core.errors import InvalidHandleError
from core.handles import (
    classify_text,
    extract_mentions,
    is_newer,
    max_item_id,
    normalize_handle,
)
from core.models import ItemType


def test_normalize_handle_strips_at_and_lowercases() -> None:
    assert normalize_handle("@ElonMusk") == "elonmusk"
    assert normalize_handle("  abc_123 ") == "abc_123"


@pytest.mark.parametrize("raw", ["", "@", "two words", "way_too_long_handle_name", "bad-char"])
def test_normalize_handle_rejects_invalid(raw: str) -> None:
    with pytest.raises(InvalidHandleError):
        normalize_handle(raw)


def test_is_newer_compares_numerically() -> None:
    assert is_newer("10", "9")
    assert not is_newer("9", "10")
    assert not is_newer("10", "10")
    assert is_newer("1", None)


def test_is_newer_includes_non_numeric_ids() -> None:
    assert is_newer("abc", "100")
    assert is_newer("100", "abc")


def test_max_item_id_never_moves_backwards() -> None:
    assert max_item_id(None, "5") == "5"
    assert max_item_id("5", "4") == "5"
    assert max_item_id("5", "x") == "5"
    assert max_item_id("5", "12") == "12"


def test_extract_mentions_unique_in_order() -> None:
    assert extract_mentions("hi @Bob and @alice, also @bob") == ["bob", "alice"]


def test_classify_text() -> None:
    assert classify_text("RT @someone: hello") == ItemType.RETWEET
    assert classify_text("hello", "RT by @abc: hello") == ItemType.RETWEET
    assert classify_text("R to @someone: yes") == ItemType.REPLY
    assert classify_text("look at this", "abc quoted a post") == ItemType.QUOTE
    assert classify_text("just a post") == ItemType.ORIGINAL
