"""Multi-source task estimator.

The Estimator is the public entry point. For each task it:

1. kicks an opportunistic background sync of the historical store if the
   data is stale (never waiting for it);
2. collects candidate estimates from tracked time, historical similarity,
   AI analysis and keywords;
3. selects the best candidate above the confidence floor, falling back to
   a fixed default;
4. passes the winner through calibration.

Every instance owns its own sync state and cache handle; nothing is shared
between instances.
"""

import logging
from datetime import datetime
from typing import Any, Callable

from .ai_analyzer import AIAnalyzer
from .ai_cache import AICache
from .ai_providers import get_provider
from .config import EstimatorConfig
from .exceptions import CacheError
from .interfaces import AIBackendInterface, HistoricalStoreInterface, TrackedTimeSourceInterface
from .keyword_classifier import KeywordClassifier
from .learning import CalibrationLearner
from .models import AccuracyStats, Estimate, EstimationSource, LearningRecord, SyncResult, Task
from .selector import select_estimate
from .sources import SourceCollector
from .sync_scheduler import SyncScheduler
from .timewarrior import TimewarriorClient
from .utils import utc_now

logger = logging.getLogger(__name__)


class Estimator:
    """Reconcile several estimate sources into one best-effort estimate."""

    def __init__(
        self,
        config: EstimatorConfig | None = None,
        historical_store: HistoricalStoreInterface | None = None,
        tracked_time: TrackedTimeSourceInterface | None = None,
        ai_backend: AIBackendInterface | None = None,
        cache: AICache | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """Initialize estimator.

        Collaborators that are not passed in are built from the config where
        possible. An AI backend or cache that cannot be built is logged and
        left out, which disables that feature.

        Args:
            config: Estimator configuration (defaults if not provided)
            historical_store: Store of completed tasks (similarity, learning, sync)
            tracked_time: Time tracking source (timewarrior if installed)
            ai_backend: AI analysis backend (built from config when AI is active)
            cache: AI estimate cache (opened at config.cache_path when caching is on)
            clock: Returns the current time; injectable for tests
        """
        self.config = config or EstimatorConfig.default()
        self.clock = clock or utc_now
        self.historical_store = historical_store
        self.tracked_time = tracked_time if tracked_time is not None else self._default_tracked_time()
        self.ai_backend = ai_backend if ai_backend is not None else self._build_ai_backend()
        self.cache = cache if cache is not None else self._open_cache()

        self.collector = SourceCollector(
            self.config,
            tracked_time=self.tracked_time,
            historical_store=self.historical_store,
            ai_backend=self.ai_backend,
            cache=self.cache,
            classifier=KeywordClassifier(),
        )
        self.learner = CalibrationLearner(self.historical_store, clock=self.clock)
        self.scheduler = SyncScheduler(
            self.historical_store,
            self.tracked_time,
            interval=self.config.auto_sync_interval,
            window=self.config.sync_window,
            enabled=self.config.auto_sync_enabled,
            clock=self.clock,
        )

    def _default_tracked_time(self) -> TrackedTimeSourceInterface | None:
        client = TimewarriorClient()
        if not client.is_available():
            logger.debug("timewarrior not found, tracked time estimates disabled")
            return None
        return client

    def _build_ai_backend(self) -> AIBackendInterface | None:
        if not self.config.ai_active:
            return None
        try:
            provider = get_provider(self.config.ai_provider, model=self.config.ai_model)
        except Exception as e:
            logger.warning(f"AI estimates disabled: {e}")
            return None

        analyzer = AIAnalyzer(provider, historical_store=self.historical_store, clock=self.clock)
        if not analyzer.is_available():
            logger.info(f"No API key for {provider.provider_name}, AI estimates will be skipped")
        return analyzer

    def _open_cache(self) -> AICache | None:
        if not (self.config.ai_active and self.config.cache_ai_estimates):
            return None
        try:
            return AICache(self.config.resolved_cache_path, clock=self.clock)
        except CacheError as e:
            logger.warning(f"AI estimate cache disabled: {e}")
            return None

    def __enter__(self) -> "Estimator":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """Release the cache handle."""
        if self.cache is not None:
            self.cache.close()

    def estimate_task(self, task: Task) -> Estimate:
        """Produce the best available estimate for a task.

        Never waits for a background sync. Always returns an estimate: when
        no source is confident enough, the configured fallback is used.

        Args:
            task: Task to estimate

        Returns:
            Selected and calibrated Estimate
        """
        if self.config.auto_sync_enabled:
            self.scheduler.maybe_sync()

        candidates = self.collector.collect(task)
        best = select_estimate(candidates, self.config)
        estimate = self.learner.apply_learning(best, task)

        logger.debug(
            f"Estimated {task.uuid or task.description!r}: {estimate.hours:.2f}h "
            f"from {estimate.source.value} ({estimate.confidence:.2f})"
        )
        return estimate

    def record_task_completion(
        self,
        task: Task,
        estimated_hours: float,
        actual_hours: float,
        source: EstimationSource,
    ) -> LearningRecord:
        """Record a completed task to improve future estimates.

        Raises:
            MissingDependencyError: If there is no historical store
            EstimationError: If the store fails to record the completion
        """
        return self.learner.record_completion(task, estimated_hours, actual_hours, source)

    def force_sync(self, since: datetime) -> SyncResult:
        """Sync the historical store from the time log right now.

        Raises:
            SyncError: If the sync cannot run or fails
        """
        return self.scheduler.force_sync(since)

    def last_sync_time(self) -> datetime | None:
        """When the historical store was last synced (None = never)."""
        return self.scheduler.last_sync_time()

    def estimation_accuracy(
        self, source: EstimationSource | None = None, project_filter: str = ""
    ) -> AccuracyStats:
        """Aggregate accuracy of past estimates.

        Raises:
            MissingDependencyError: If there is no historical store
        """
        return self.learner.estimation_accuracy(source, project_filter)

    def calibration_factor(self, source: EstimationSource, project: str) -> float:
        return self.learner.calibration_factor(source, project)

    def apply_learning(self, estimate: Estimate, task: Task) -> Estimate:
        return self.learner.apply_learning(estimate, task)

    def project_accuracy(self, project_name: str) -> dict[str, Any]:
        return self.learner.project_accuracy(project_name)

    def suggest_improvements(self, task: Task) -> list[str]:
        return self.learner.suggest_improvements(task)

    def clean_cache(self) -> int:
        """Remove expired AI estimates.

        Returns:
            Number of entries removed (0 without a cache)
        """
        if self.cache is None:
            return 0
        return self.cache.clean_expired()

    def sync_status(self) -> dict[str, Any]:
        """Describe the auto-sync configuration and state."""
        last_sync = self.scheduler.last_sync_time()
        next_due = self.scheduler.next_sync_due()
        return {
            "enabled": self.config.auto_sync_enabled,
            "available": self.scheduler.can_sync,
            "interval_hours": self.config.auto_sync_interval.total_seconds() / 3600,
            "last_sync": last_sync.isoformat() if last_sync else None,
            "next_sync_due": next_due.isoformat() if next_due else None,
        }

