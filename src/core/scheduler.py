"""Fixed-interval polling over all watched sources.

Sources are checked one after another, never in parallel, with a pause
between them so upstream endpoints see a steady trickle of requests.
The per-source order is strict:
1) Read the global cursor
2) Fetch newer items (with endpoint failover)
3) Dispatch each item, oldest first
4) Advance the cursor after each dispatched item
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional

from core.config import PollConfig
from core.dispatcher import DeliveryDispatcher, DispatchStats
from core.errors import FetchError
from core.fetching import FailoverFetcher
from core.handles import normalize_handle
from core.ports import StoragePort

LOGGER = logging.getLogger(__name__)


@dataclass
class SourceCheck:
    """Result of checking one source."""

    handle: str
    ok: bool = True
    items: int = 0
    cursor: Optional[str] = None
    stats: DispatchStats = field(default_factory=DispatchStats)


@dataclass
class CycleStats:
    sources: int = 0
    failed_sources: int = 0
    items: int = 0
    delivered: int = 0


class PollScheduler:
    """Drives poll cycles and owns the shutdown signal."""

    def __init__(
        self,
        storage: StoragePort,
        fetcher: FailoverFetcher,
        dispatcher: DeliveryDispatcher,
        poll_config: PollConfig,
    ) -> None:
        self._storage = storage
        self._fetcher = fetcher
        self._dispatcher = dispatcher
        self._config = poll_config
        self._stopping = asyncio.Event()

    @property
    def stopping(self) -> bool:
        return self._stopping.is_set()

    def stop(self) -> None:
        """Stop after the in-flight source check completes."""

        self._stopping.set()

    async def run(self) -> None:
        """Run cycles until stopped. Cycles never overlap."""

        LOGGER.info("Poll scheduler started (interval %ss)", self._config.interval_seconds)
        while not self.stopping:
            started = time.monotonic()
            try:
                await self.run_cycle()
            except Exception:
                LOGGER.exception("Poll cycle failed")
            elapsed = time.monotonic() - started
            await self._sleep(self._config.interval_seconds - elapsed)
        LOGGER.info("Poll scheduler stopped")

    async def run_cycle(self) -> CycleStats:
        """Check every watched source once."""

        cycle = CycleStats()
        handles = list(dict.fromkeys(self._storage.list_sources()))
        if not handles:
            return cycle

        LOGGER.info("Checking %s watched sources", len(handles))
        for position, handle in enumerate(handles):
            if self.stopping:
                break
            if position:
                await self._sleep(self._config.source_delay_seconds)
                if self.stopping:
                    break
            cycle.sources += 1
            try:
                result = await self.check_source(handle)
            except Exception:
                LOGGER.exception("Error checking @%s", handle)
                cycle.failed_sources += 1
                continue
            if not result.ok:
                cycle.failed_sources += 1
            cycle.items += result.items
            cycle.delivered += result.stats.delivered

        LOGGER.info(
            "Poll cycle complete: sources=%s, failed=%s, items=%s, delivered=%s",
            cycle.sources,
            cycle.failed_sources,
            cycle.items,
            cycle.delivered,
        )
        return cycle

    async def check_source(self, handle: str) -> SourceCheck:
        """Fetch and dispatch new items for one source."""

        cursor = self._storage.get_cursor(handle)
        result = SourceCheck(handle=handle, cursor=cursor)
        try:
            items = await self._fetcher.fetch(handle, cursor, self._config.fetch_limit)
        except FetchError as exc:
            # Left for the next interval; the cursor stays where it was.
            LOGGER.error("Skipping @%s this cycle: %s", handle, exc)
            result.ok = False
            return result

        if not items:
            return result

        LOGGER.info("Found %s new items from @%s", len(items), handle)
        for item in items:
            stats = await self._dispatcher.dispatch(handle, item)
            result.stats.merge(stats)
            result.items += 1
            result.cursor = self._storage.advance_cursor(handle, item.item_id)
        return result

    async def force_check(self, raw_handle: str) -> SourceCheck:
        """Check one source out of band."""

        return await self.check_source(normalize_handle(raw_handle))

    async def _sleep(self, seconds: float) -> None:
        if seconds <= 0:
            return
        try:
            await asyncio.wait_for(self._stopping.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass
