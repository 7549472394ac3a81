from __future__ import annotations

import asyncio

import pytest

from core.endpoints import EndpointSelector
from core.errors import SourceUnavailableError, UnknownSourceError
from core.fetching import FailoverFetcher

from fakes import FakeFetcher, make_item, network_error

ENDPOINTS = ["https://a.example", "https://b.example", "https://c.example"]


def test_rotation_wraps_circularly() -> None:
    selector = EndpointSelector(ENDPOINTS)
    assert selector.current() == "https://a.example"
    selector.rotate()
    selector.rotate()
    assert selector.current() == "https://c.example"
    selector.rotate()
    assert selector.current() == "https://a.example"


def test_empty_endpoint_list_is_rejected() -> None:
    with pytest.raises(ValueError):
        EndpointSelector([])


def test_trailing_slashes_are_trimmed() -> None:
    assert EndpointSelector(["https://a.example/"]).current() == "https://a.example"


def test_all_endpoints_failing_makes_exactly_n_attempts() -> None:
    fetcher = FakeFetcher(failing={url: network_error() for url in ENDPOINTS})
    selector = EndpointSelector(ENDPOINTS)
    failover = FailoverFetcher(fetcher, selector)

    with pytest.raises(SourceUnavailableError):
        asyncio.run(failover.fetch("abc", None, 10))

    assert [call[0] for call in fetcher.calls] == ENDPOINTS
    # Rotated N times, so back where it started.
    assert selector.current() == "https://a.example"


def test_failover_keeps_working_endpoint_for_next_source() -> None:
    fetcher = FakeFetcher(
        timeline={"abc": [make_item("5")], "xyz": [make_item("9", author="xyz")]},
        failing={"https://a.example": network_error()},
    )
    selector = EndpointSelector(ENDPOINTS)
    failover = FailoverFetcher(fetcher, selector)

    first = asyncio.run(failover.fetch("abc", None, 10))
    second = asyncio.run(failover.fetch("xyz", None, 10))

    assert [item.item_id for item in first] == ["5"]
    assert [item.item_id for item in second] == ["9"]
    assert [call[0] for call in fetcher.calls] == [
        "https://a.example",
        "https://b.example",
        "https://b.example",
    ]


def test_unknown_everywhere_is_reported_as_unknown() -> None:
    fetcher = FakeFetcher(failing={url: UnknownSourceError("404") for url in ENDPOINTS})
    failover = FailoverFetcher(fetcher, EndpointSelector(ENDPOINTS))

    with pytest.raises(UnknownSourceError):
        asyncio.run(failover.fetch("ghost", None, 1))


def test_slow_endpoint_counts_as_failed_attempt() -> None:
    class SlowThenFast(FakeFetcher):
        async def fetch(self, endpoint, handle, since_id, limit):
            if endpoint == "https://a.example":
                self.calls.append((endpoint, handle, since_id))
                await asyncio.sleep(1)
            return await super().fetch(endpoint, handle, since_id, limit)

    fetcher = SlowThenFast(timeline={"abc": [make_item("1")]})
    failover = FailoverFetcher(fetcher, EndpointSelector(ENDPOINTS), timeout_seconds=0.01)

    items = asyncio.run(failover.fetch("abc", None, 10))

    assert [item.item_id for item in items] == ["1"]
    assert fetcher.calls[0][0] == "https://a.example"
    assert fetcher.calls[-1][0] == "https://b.example"
