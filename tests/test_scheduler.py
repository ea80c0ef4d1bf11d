"""Scheduler lifecycle tests."""

from __future__ import annotations

import asyncio

import pytest

from disruptwatch.scheduler import IngestionScheduler
from disruptwatch.schemas import IngestResult


class CountingPipeline:
    def __init__(self, delay: float = 0.0, fail: bool = False):
        self.delay = delay
        self.fail = fail
        self.runs = 0
        self.completed = 0

    async def run(self) -> IngestResult:
        self.runs += 1
        await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("unexpected")
        self.completed += 1
        return IngestResult(processed=1, stored=1)


def test_start_runs_immediately_and_is_idempotent() -> None:
    pipeline = CountingPipeline()
    scheduler = IngestionScheduler(pipeline, interval_minutes=60)

    async def scenario() -> None:
        scheduler.start()
        scheduler.start()
        await asyncio.sleep(0.01)
        assert scheduler.is_active()
        scheduler.stop()
        await scheduler.drain()

    asyncio.run(scenario())
    assert pipeline.runs == 1
    assert not scheduler.is_active()


def test_timer_fires_repeatedly_and_allows_overlap() -> None:
    pipeline = CountingPipeline(delay=0.05)
    scheduler = IngestionScheduler(pipeline, interval_minutes=0.01 / 60)

    async def scenario() -> int:
        scheduler.start()
        await asyncio.sleep(0.035)
        scheduler.stop()
        overlapping = len(scheduler._in_flight)
        await scheduler.drain()
        return overlapping

    overlapping = asyncio.run(scenario())
    assert pipeline.runs >= 3
    assert overlapping >= 2


def test_stop_lets_in_flight_run_finish() -> None:
    pipeline = CountingPipeline(delay=0.02)
    scheduler = IngestionScheduler(pipeline, interval_minutes=60)

    async def scenario() -> None:
        scheduler.start()
        await asyncio.sleep(0.001)
        scheduler.stop()
        await scheduler.drain()

    asyncio.run(scenario())
    assert pipeline.completed == 1


def test_failed_scheduled_run_does_not_stop_timer() -> None:
    pipeline = CountingPipeline(fail=True)
    scheduler = IngestionScheduler(pipeline, interval_minutes=0.005 / 60)

    async def scenario() -> bool:
        scheduler.start()
        await asyncio.sleep(0.03)
        active = scheduler.is_active()
        scheduler.stop()
        await scheduler.drain()
        return active

    assert asyncio.run(scenario()) is True
    assert pipeline.runs >= 2


def test_run_once_is_independent_of_state() -> None:
    pipeline = CountingPipeline()
    scheduler = IngestionScheduler(pipeline, interval_minutes=15)

    result = asyncio.run(scheduler.run_once())

    assert result.stored == 1
    assert not scheduler.is_active()


def test_rejects_non_positive_interval() -> None:
    with pytest.raises(ValueError):
        IngestionScheduler(CountingPipeline(), interval_minutes=0)
