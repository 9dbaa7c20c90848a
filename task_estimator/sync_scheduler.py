"""Opportunistic background sync of the historical store.

Every estimate request asks the scheduler whether the historical store's
time-log data is stale. If it is, a daemon thread tries to run one sync.
The request itself never waits:

- the staleness check holds the state lock only long enough to read the
  last sync time;
- the worker takes the single-flight lock with a non-blocking acquire and
  simply exits if another sync already holds it.

Background failures are logged and leave the last sync time untouched, so
the next staleness check retries.
"""

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable

from .exceptions import SyncError
from .interfaces import HistoricalStoreInterface, TrackedTimeSourceInterface
from .models import SyncResult
from .utils import utc_now

logger = logging.getLogger(__name__)


class SyncScheduler:
    """Single-flight, non-blocking refresh of the historical store."""

    def __init__(
        self,
        historical_store: HistoricalStoreInterface | None,
        tracked_time: TrackedTimeSourceInterface | None,
        interval: timedelta = timedelta(hours=4),
        window: timedelta = timedelta(days=7),
        enabled: bool = True,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize scheduler.

        Args:
            historical_store: Store to refresh (scheduler is inert without it)
            tracked_time: Time log to sync from (scheduler is inert without it)
            interval: Minimum time between opportunistic syncs
            window: How far back an opportunistic sync reads
            enabled: Whether opportunistic syncs run at all
            clock: Returns the current time; injectable for tests
        """
        self.historical_store = historical_store
        self.tracked_time = tracked_time
        self.interval = interval
        self.window = window
        self.enabled = enabled
        self.clock = clock

        self._state_lock = threading.Lock()
        self._flight_lock = threading.Lock()
        self._last_sync: datetime | None = None
        self._worker: threading.Thread | None = None

        if historical_store is not None:
            try:
                last_sync = historical_store.last_sync_time()
                if last_sync is not None and last_sync.tzinfo is None:
                    last_sync = last_sync.replace(tzinfo=timezone.utc)
                self._last_sync = last_sync
            except Exception as e:
                logger.warning(f"Could not read last sync time: {e}")

    @property
    def can_sync(self) -> bool:
        """Whether both collaborators needed for a sync are present."""
        return self.historical_store is not None and self.tracked_time is not None

    def last_sync_time(self) -> datetime | None:
        """When the store was last synced (None = never)."""
        with self._state_lock:
            return self._last_sync

    def is_stale(self) -> bool:
        """Whether more than one interval has passed since the last sync."""
        last_sync = self.last_sync_time()
        return last_sync is None or self.clock() - last_sync > self.interval

    def next_sync_due(self) -> datetime | None:
        """When the next opportunistic sync becomes eligible.

        Returns:
            The due time (possibly in the past), or None if never synced,
            meaning a sync runs on the first estimation
        """
        last_sync = self.last_sync_time()
        if last_sync is None:
            return None
        return last_sync + self.interval

    def maybe_sync(self) -> threading.Thread | None:
        """Start a background sync if enabled and stale.

        Returns:
            The spawned worker thread, or None if no sync was needed
        """
        if not self.enabled or not self.can_sync:
            return None
        try:
            if not self.is_stale():
                return None
        except Exception as e:
            logger.warning(f"Skipping background sync, staleness check failed: {e}")
            return None

        worker = threading.Thread(
            target=self._background_sync,
            name="task-estimator-sync",
            daemon=True,
        )
        self._worker = worker
        worker.start()
        return worker

    def _background_sync(self) -> None:
        if not self._flight_lock.acquire(blocking=False):
            logger.debug("Background sync already in progress, skipping")
            return
        try:
            # Another worker may have finished while this one was starting
            if not self.is_stale():
                return
            since = self.clock() - self.window
            result = self.historical_store.sync_from_time_log(self.tracked_time, since)
            self._mark_synced()
            logger.debug(f"Background {result.summary().lower()}")
        except Exception as e:
            logger.warning(f"Background sync failed, will retry on next estimate: {e}")
        finally:
            self._flight_lock.release()

    def force_sync(self, since: datetime) -> SyncResult:
        """Sync now, waiting for any in-flight background sync first.

        Args:
            since: Import time-log entries after this time

        Returns:
            SyncResult from the historical store

        Raises:
            SyncError: If a collaborator is missing or the sync fails
        """
        if not self.can_sync:
            raise SyncError("Sync requires both a historical store and a time tracking source")

        with self._flight_lock:
            try:
                result = self.historical_store.sync_from_time_log(self.tracked_time, since)
            except Exception as e:
                raise SyncError(f"Sync failed: {e}") from e
            self._mark_synced()

        logger.info(result.summary())
        return result

    def _mark_synced(self) -> None:
        with self._state_lock:
            self._last_sync = self.clock()

    def join(self, timeout: float | None = None) -> None:
        """Wait for the most recently spawned worker to finish."""
        worker = self._worker
        if worker is not None:
            worker.join(timeout)
