"""Periodic cleanup of old delivery records."""

from __future__ import annotations

import asyncio
import logging

from core.config import RetentionConfig
from core.ports import StoragePort

LOGGER = logging.getLogger(__name__)


class RetentionJob:
    """Purges delivery records older than the configured horizon."""

    def __init__(self, storage: StoragePort, config: RetentionConfig) -> None:
        self._storage = storage
        self._config = config
        self._stopping = asyncio.Event()

    def stop(self) -> None:
        self._stopping.set()

    def purge_once(self) -> int:
        removed = self._storage.purge_deliveries(self._config.days)
        LOGGER.info("Delivery cleanup removed %s records older than %s days", removed, self._config.days)
        return removed

    async def run(self) -> None:
        interval = self._config.interval_hours * 3600
        while not self._stopping.is_set():
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=interval)
                break
            except asyncio.TimeoutError:
                pass
            try:
                self.purge_once()
            except Exception:
                LOGGER.exception("Delivery cleanup failed")
