from __future__ import annotations

import asyncio

from core.config import RetentionConfig
from core.retention import RetentionJob

from fakes import FakeStorage


class RecordingStorage(FakeStorage):
    def __init__(self) -> None:
        super().__init__()
        self.purge_calls: list[int] = []

    def purge_deliveries(self, older_than_days: int) -> int:
        self.purge_calls.append(older_than_days)
        return super().purge_deliveries(older_than_days)


def test_purge_once_uses_configured_horizon() -> None:
    storage = RecordingStorage()
    storage.record_delivery(1, "a")
    storage.record_delivery(2, "b")

    removed = RetentionJob(storage, RetentionConfig(days=3)).purge_once()

    assert removed == 2
    assert storage.purge_calls == [3]


def test_run_purges_on_interval_until_stopped() -> None:
    storage = RecordingStorage()

    async def scenario() -> None:
        job = RetentionJob(storage, RetentionConfig(days=7, interval_hours=0.00001))
        task = asyncio.create_task(job.run())
        await asyncio.sleep(0.2)
        job.stop()
        await asyncio.wait_for(task, timeout=1)

    asyncio.run(scenario())
    assert storage.purge_calls
    assert set(storage.purge_calls) == {7}


def test_stopped_job_does_not_purge() -> None:
    storage = RecordingStorage()

    async def scenario() -> None:
        job = RetentionJob(storage, RetentionConfig(interval_hours=1))
        job.stop()
        await asyncio.wait_for(job.run(), timeout=1)

    asyncio.run(scenario())
    assert storage.purge_calls == []
