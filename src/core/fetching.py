"""Endpoint failover around a single timeline backend."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from core.endpoints import EndpointSelector
from core.errors import FetchError, SourceUnavailableError, UnknownSourceError
from core.models import Item
from core.ports import FetcherPort

LOGGER = logging.getLogger(__name__)


class FailoverFetcher:
    """Fetch a timeline, rotating endpoints on failure.

    Makes at most one attempt per configured endpoint. The rotation index
    lives in the shared selector, so a successful endpoint stays current for
    the next source.
    """

    def __init__(
        self,
        fetcher: FetcherPort,
        selector: EndpointSelector,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        self._fetcher = fetcher
        self._selector = selector
        self._timeout = timeout_seconds

    async def fetch(self, handle: str, since_id: Optional[str], limit: int) -> List[Item]:
        attempts = len(self._selector)
        errors: List[FetchError] = []

        for _ in range(attempts):
            endpoint = self._selector.current()
            try:
                return await self._attempt(endpoint, handle, since_id, limit)
            except FetchError as exc:
                LOGGER.warning("Endpoint %s failed for @%s: %s", endpoint, handle, exc)
                errors.append(exc)
            self._selector.rotate()

        if errors and all(isinstance(err, UnknownSourceError) for err in errors):
            raise UnknownSourceError(f"@{handle} was not found on any endpoint")
        raise SourceUnavailableError(
            f"All {attempts} endpoints failed for @{handle}: {errors[-1]}"
        ) from errors[-1]

    async def _attempt(
        self,
        endpoint: str,
        handle: str,
        since_id: Optional[str],
        limit: int,
    ) -> List[Item]:
        call = self._fetcher.fetch(endpoint, handle, since_id, limit)
        if self._timeout is None:
            return await call
        try:
            return await asyncio.wait_for(call, timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            raise FetchError(f"timed out after {self._timeout}s") from exc
