"""Tests for the background sync scheduler."""

import threading
from unittest.mock import MagicMock

import pytest

from weathersync.models.sync import SyncResult
from weathersync.sync.engine import WeatherSyncEngine
from weathersync.sync.scheduler import SyncScheduler, TickOutcome
from weathersync.tests.factories import at


def _result(location_id: str, success: bool) -> SyncResult:
    return SyncResult(
        location_id=location_id,
        location_name=location_id.title(),
        success=success,
        message="ok" if success else "Sync failed: down",
        synced_at=at(12),
    )


@pytest.fixture
def engine() -> MagicMock:
    e = MagicMock(spec=WeatherSyncEngine)
    e.scheduled_sync.return_value = []
    return e


class TestTick:
    def test_outcome_counts(self, engine):
        engine.scheduled_sync.return_value = [_result("a", True), _result("b", False)]
        scheduler = SyncScheduler(engine, interval_seconds=60)

        outcome = scheduler.tick()

        assert outcome == TickOutcome(tick=1, ok=True, synced=2, succeeded=1)
        assert scheduler.total_ticks == 1
        assert scheduler.failed_ticks == 0

    def test_crash_is_counted_and_recovered(self, engine):
        engine.scheduled_sync.side_effect = [RuntimeError("db locked"), []]
        scheduler = SyncScheduler(engine, interval_seconds=60)

        first = scheduler.tick()
        assert first.ok is False
        assert first.error == "db locked"
        assert scheduler.failed_ticks == 1
        assert scheduler.consecutive_failures == 1

        second = scheduler.tick()
        assert second.ok is True
        assert scheduler.consecutive_failures == 0
        assert scheduler.total_ticks == 2

    def test_never_reenters(self, engine):
        scheduler = SyncScheduler(engine, interval_seconds=60)
        inner = []

        def reenter():
            inner.append(scheduler.tick())
            return []

        engine.scheduled_sync.side_effect = reenter

        outcome = scheduler.tick()

        assert inner == [None]
        assert outcome.ok is True
        assert engine.scheduled_sync.call_count == 1

    def test_on_tick_receives_outcome(self, engine):
        seen = []
        scheduler = SyncScheduler(engine, interval_seconds=60, on_tick=seen.append)
        scheduler.tick()
        assert len(seen) == 1
        assert seen[0].tick == 1

    def test_on_tick_failure_does_not_propagate(self, engine):
        def broken(outcome):
            raise ValueError("bad callback")

        scheduler = SyncScheduler(engine, interval_seconds=60, on_tick=broken)
        assert scheduler.tick().ok is True


class TestBackoff:
    def test_success_waits_interval(self, engine):
        scheduler = SyncScheduler(engine, interval_seconds=10)
        assert scheduler._next_wait(TickOutcome(tick=1, ok=True)) == 10
        assert scheduler._next_wait(None) == 10

    def test_exponential_with_cap(self, engine):
        scheduler = SyncScheduler(engine, interval_seconds=10, max_backoff_seconds=50)
        failed = TickOutcome(tick=1, ok=False, error="x")

        scheduler.consecutive_failures = 1
        assert scheduler._next_wait(failed) == 20
        scheduler.consecutive_failures = 2
        assert scheduler._next_wait(failed) == 40
        scheduler.consecutive_failures = 5
        assert scheduler._next_wait(failed) == 50

    def test_backoff_never_below_interval(self, engine):
        scheduler = SyncScheduler(engine, interval_seconds=100, max_backoff_seconds=30)
        scheduler.consecutive_failures = 3
        assert scheduler._next_wait(TickOutcome(tick=1, ok=False)) == 100


class TestLifecycle:
    def test_rejects_non_positive_interval(self, engine):
        with pytest.raises(ValueError):
            SyncScheduler(engine, interval_seconds=0)

    def test_start_and_stop(self, engine):
        ticked = threading.Event()

        def sync():
            ticked.set()
            return []

        engine.scheduled_sync.side_effect = sync
        scheduler = SyncScheduler(engine, interval_seconds=3600)

        scheduler.start()
        assert ticked.wait(5)
        assert scheduler.running is True

        scheduler.stop(timeout=5)
        assert scheduler.running is False
        assert scheduler.total_ticks == 1

    def test_start_twice_is_noop(self, engine):
        scheduler = SyncScheduler(engine, interval_seconds=3600)
        scheduler.start()
        thread = scheduler._thread
        scheduler.start()
        assert scheduler._thread is thread
        scheduler.stop(timeout=5)

    def test_run_forever_exits_on_request_stop(self, engine):
        scheduler = SyncScheduler(engine, interval_seconds=3600)
        scheduler._on_tick = lambda outcome: scheduler.request_stop()

        scheduler.run_forever()

        assert scheduler.total_ticks == 1
