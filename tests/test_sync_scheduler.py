"""Tests for the opportunistic sync scheduler."""

import logging
import threading
from datetime import timedelta

import pytest

from task_estimator.exceptions import SyncError
from task_estimator.models import SyncResult
from task_estimator.sync_scheduler import SyncScheduler


@pytest.fixture
def scheduler(historical_store, tracked_time, clock) -> SyncScheduler:
    return SyncScheduler(historical_store, tracked_time, clock=clock)


class TestStaleness:
    """Tests for deciding when a sync is due."""

    def test_never_synced_is_stale(self, scheduler: SyncScheduler) -> None:
        """Test a store that was never synced is stale."""
        assert scheduler.last_sync_time() is None
        assert scheduler.is_stale()
        assert scheduler.next_sync_due() is None

    def test_initial_time_from_store(self, historical_store, tracked_time, clock, now) -> None:
        """Test the last sync time is read from the store on start."""
        historical_store.last_sync_time.return_value = now - timedelta(hours=1)
        scheduler = SyncScheduler(historical_store, tracked_time, clock=clock)

        assert not scheduler.is_stale()
        assert scheduler.next_sync_due() == now + timedelta(hours=3)

    def test_stale_after_interval(self, historical_store, tracked_time, clock, now) -> None:
        """Test the store becomes stale once the interval has passed."""
        historical_store.last_sync_time.return_value = now
        scheduler = SyncScheduler(historical_store, tracked_time, clock=clock)

        clock.advance(timedelta(hours=4))
        assert not scheduler.is_stale()
        clock.advance(timedelta(seconds=1))
        assert scheduler.is_stale()

    def test_store_error_on_start(self, historical_store, tracked_time, clock) -> None:
        """Test an unreadable last sync time counts as never synced."""
        historical_store.last_sync_time.side_effect = RuntimeError("db locked")
        scheduler = SyncScheduler(historical_store, tracked_time, clock=clock)
        assert scheduler.last_sync_time() is None

    def test_naive_store_time_is_utc(self, historical_store, tracked_time, clock, now) -> None:
        """Test a naive last sync time from the store is read as UTC."""
        historical_store.last_sync_time.return_value = (now - timedelta(hours=1)).replace(tzinfo=None)
        scheduler = SyncScheduler(historical_store, tracked_time, clock=clock)

        assert scheduler.last_sync_time() == now - timedelta(hours=1)
        assert not scheduler.is_stale()
        assert scheduler.maybe_sync() is None


class TestMaybeSync:
    """Tests for background syncs."""

    def test_syncs_recent_window_when_stale(self, scheduler, historical_store, tracked_time, now) -> None:
        """Test a stale store is synced for the last seven days."""
        worker = scheduler.maybe_sync()
        assert worker is not None
        assert worker.daemon
        worker.join(timeout=5)

        historical_store.sync_from_time_log.assert_called_once_with(tracked_time, now - timedelta(days=7))
        assert scheduler.last_sync_time() == now

    def test_second_call_within_interval_does_nothing(self, scheduler, historical_store, clock) -> None:
        """Test two estimates within one interval trigger at most one sync."""
        scheduler.maybe_sync().join(timeout=5)

        clock.advance(timedelta(hours=1))
        assert scheduler.maybe_sync() is None
        assert historical_store.sync_from_time_log.call_count == 1

    def test_single_flight(self, scheduler, historical_store) -> None:
        """Test a second worker exits while a sync is in flight."""
        started = threading.Event()
        release = threading.Event()

        def slow_sync(client, since):
            started.set()
            release.wait(timeout=5)
            return SyncResult()

        historical_store.sync_from_time_log.side_effect = slow_sync

        first = scheduler.maybe_sync()
        assert started.wait(timeout=5)

        # Still stale: the first sync has not committed yet
        second = scheduler.maybe_sync()
        assert second is not None
        second.join(timeout=5)
        assert not second.is_alive()

        release.set()
        first.join(timeout=5)
        assert historical_store.sync_from_time_log.call_count == 1

    def test_failure_keeps_last_sync_and_retries(self, scheduler, historical_store, caplog) -> None:
        """Test a failed background sync is logged and retried next time."""
        historical_store.sync_from_time_log.side_effect = RuntimeError("timew exploded")

        with caplog.at_level(logging.WARNING, logger="task_estimator.sync_scheduler"):
            scheduler.maybe_sync().join(timeout=5)

        assert scheduler.last_sync_time() is None
        assert "timew exploded" in caplog.text

        historical_store.sync_from_time_log.side_effect = None
        scheduler.maybe_sync().join(timeout=5)
        assert scheduler.last_sync_time() is not None

    def test_disabled(self, historical_store, tracked_time, clock) -> None:
        """Test no sync runs when auto-sync is off."""
        scheduler = SyncScheduler(historical_store, tracked_time, enabled=False, clock=clock)
        assert scheduler.maybe_sync() is None
        historical_store.sync_from_time_log.assert_not_called()

    def test_inert_without_tracked_time(self, historical_store, clock) -> None:
        """Test no sync runs without a time tracking source."""
        scheduler = SyncScheduler(historical_store, None, clock=clock)
        assert scheduler.maybe_sync() is None

    def test_failed_staleness_check_is_skipped(self, historical_store, tracked_time, now, caplog) -> None:
        """Test a staleness check that raises skips the sync instead of failing the caller."""
        historical_store.last_sync_time.return_value = now
        scheduler = SyncScheduler(historical_store, tracked_time, clock=lambda: now.replace(tzinfo=None))

        with caplog.at_level(logging.WARNING, logger="task_estimator.sync_scheduler"):
            assert scheduler.maybe_sync() is None

        assert "staleness check failed" in caplog.text
        historical_store.sync_from_time_log.assert_not_called()

    def test_join_without_worker(self, scheduler: SyncScheduler) -> None:
        """Test joining before any sync is a no-op."""
        scheduler.join(timeout=0.1)


class TestForceSync:
    """Tests for explicit synchronous syncs."""

    def test_returns_result_and_advances(self, scheduler, historical_store, tracked_time, now, caplog) -> None:
        """Test a forced sync reports its result and records the time."""
        since = now - timedelta(days=30)

        with caplog.at_level(logging.INFO, logger="task_estimator.sync_scheduler"):
            result = scheduler.force_sync(since)

        assert result.new_entries == 3
        historical_store.sync_from_time_log.assert_called_once_with(tracked_time, since)
        assert scheduler.last_sync_time() == now
        assert "Sync completed: 3 new entries, 1 updated" in caplog.text

    def test_ignores_staleness(self, historical_store, tracked_time, clock, now) -> None:
        """Test a forced sync runs even when the data is fresh."""
        historical_store.last_sync_time.return_value = now
        scheduler = SyncScheduler(historical_store, tracked_time, clock=clock)

        scheduler.force_sync(now)
        historical_store.sync_from_time_log.assert_called_once()

    def test_propagates_failure(self, scheduler, historical_store, now) -> None:
        """Test a failed forced sync raises and leaves the time unchanged."""
        historical_store.sync_from_time_log.side_effect = RuntimeError("disk full")

        with pytest.raises(SyncError, match="disk full"):
            scheduler.force_sync(now)
        assert scheduler.last_sync_time() is None

    def test_requires_collaborators(self, clock, now) -> None:
        """Test a forced sync without a store is an error."""
        with pytest.raises(SyncError):
            SyncScheduler(None, None, clock=clock).force_sync(now)
