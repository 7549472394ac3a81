"""Round-robin selection over interchangeable timeline endpoints."""

from __future__ import annotations

import logging
from typing import Iterable, List

LOGGER = logging.getLogger(__name__)


class EndpointSelector:
    """Ordered endpoint list with a circular rotation index.

    One instance is shared by every fetch in the process, so an endpoint that
    failed stays skipped for the remaining sources of the cycle.
    """

    def __init__(self, endpoints: Iterable[str]) -> None:
        self._endpoints: List[str] = [e.rstrip("/") for e in endpoints if e]
        if not self._endpoints:
            raise ValueError("At least one endpoint is required")
        self._index = 0

    def __len__(self) -> int:
        return len(self._endpoints)

    def current(self) -> str:
        return self._endpoints[self._index]

    def rotate(self) -> str:
        """Advance to the next endpoint and return it."""

        self._index = (self._index + 1) % len(self._endpoints)
        LOGGER.warning("Switched to endpoint %s", self.current())
        return self.current()
