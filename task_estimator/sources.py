"""Estimate sources and their collection.

Each source turns a task into zero or one candidate estimate. A source
that has nothing to say, or that fails, abstains by returning None; the
collector gathers whatever the remaining sources produce.

Sources, in collection order:

1. Tracked time - hours already logged in timewarrior for the task.
2. Historical similarity - delegated to the historical store.
3. AI - LLM analysis, read through and written to the AI cache.
4. Keywords - always produces a candidate.
"""

import logging

from .ai_cache import AICache
from .config import EstimatorConfig
from .error_handling import abstain_on_error
from .interfaces import AIBackendInterface, HistoricalStoreInterface, TrackedTimeSourceInterface
from .keyword_classifier import KeywordClassifier
from .models import Estimate, EstimateDetails, EstimationSource, Task

logger = logging.getLogger(__name__)

COMPLETED_CONFIDENCE = 0.9
PROJECTED_CONFIDENCE = 0.7
IN_PROGRESS_CONFIDENCE = 0.5
AI_CONFIDENCE = 0.6
SIMILAR_TASKS_FOR_PROGRESS = 5


class SourceCollector:
    """Gather candidate estimates for a task from every available source."""

    def __init__(
        self,
        config: EstimatorConfig,
        tracked_time: TrackedTimeSourceInterface | None = None,
        historical_store: HistoricalStoreInterface | None = None,
        ai_backend: AIBackendInterface | None = None,
        cache: AICache | None = None,
        classifier: KeywordClassifier | None = None,
    ):
        """Initialize collector.

        Args:
            config: Estimator configuration
            tracked_time: Time tracking source (tracked-time source abstains without it)
            historical_store: Historical store (similarity source abstains without it)
            ai_backend: AI backend (AI source abstains without it)
            cache: AI estimate cache (AI results are not cached without it)
            classifier: Keyword classifier
        """
        self.config = config
        self.tracked_time = tracked_time
        self.historical_store = historical_store
        self.ai_backend = ai_backend
        self.cache = cache
        self.classifier = classifier or KeywordClassifier()

    def collect(self, task: Task) -> list[Estimate]:
        """Collect candidate estimates from all sources.

        Args:
            task: Task to estimate

        Returns:
            Candidates in collection order (at least the keyword estimate)
        """
        candidates = [
            self.tracked_time_estimate(task),
            self.historical_estimate(task),
            self.ai_estimate(task),
            self.keyword_estimate(task),
        ]
        estimates = [c for c in candidates if c is not None]
        logger.debug(
            f"Collected {len(estimates)} estimates for {task.uuid or task.description!r}: "
            f"{[e.source.value for e in estimates]}"
        )
        return estimates

    @abstain_on_error("tracked time")
    def tracked_time_estimate(self, task: Task) -> Estimate | None:
        """Estimate from time already tracked against the task."""
        if self.tracked_time is None or not task.uuid:
            return None

        entries = self.tracked_time.entries_for_task(task.uuid)
        if not entries:
            return None

        tracked_hours = self.tracked_time.total_hours(entries)
        if tracked_hours <= 0:
            return None

        hours = tracked_hours
        confidence = COMPLETED_CONFIDENCE
        reason = f"Already tracked {tracked_hours:.1f} hours"

        if not task.is_completed:
            completion = self.estimate_completion_percentage(task, tracked_hours)
            if completion > 0:
                hours = tracked_hours / completion
                reason = (
                    f"Tracked {tracked_hours:.1f} hours "
                    f"(estimated {completion * 100:.0f}% complete)"
                )
                confidence = PROJECTED_CONFIDENCE
            else:
                reason += " (in progress)"
                confidence = IN_PROGRESS_CONFIDENCE

        return Estimate(
            hours=hours,
            source=EstimationSource.TRACKED_TIME,
            confidence=confidence,
            reason=reason,
            details=EstimateDetails(entries=len(entries), is_complete=task.is_completed),
        )

    def estimate_completion_percentage(self, task: Task, tracked_hours: float) -> float:
        """Estimate how far along an open task is from similar completed tasks.

        Each similar task with known actual hours contributes
        ``min(tracked / actual, 1.0)`` weighted by its similarity score; the
        sum is averaged over the contributing matches.

        Returns:
            Fraction complete in (0, 1], or 0 when it cannot be derived
        """
        if self.historical_store is None:
            return 0.0

        try:
            similar = self.historical_store.similar_tasks(task, SIMILAR_TASKS_FOR_PROGRESS)
        except Exception as e:
            logger.debug(f"Could not load similar tasks for progress estimate: {e}")
            return 0.0

        weighted = [
            min(tracked_hours / match.entry.actual_hours, 1.0) * match.score
            for match in similar
            if match.entry.actual_hours > 0
        ]
        if not weighted:
            return 0.0
        return sum(weighted) / len(weighted)

    @abstain_on_error("historical")
    def historical_estimate(self, task: Task) -> Estimate | None:
        """Estimate from similar completed tasks in the historical store."""
        if self.historical_store is None:
            return None

        hours, reason, confidence = self.historical_store.estimate_by_similarity(task)
        if hours <= 0:
            return None

        return Estimate(
            hours=hours,
            source=EstimationSource.HISTORICAL,
            confidence=confidence,
            reason=reason,
        )

    @abstain_on_error("AI")
    def ai_estimate(self, task: Task) -> Estimate | None:
        """Estimate from AI analysis, served from the cache when possible."""
        if not self.config.ai_active or self.ai_backend is None:
            return None

        use_cache = self.config.cache_ai_estimates and self.cache is not None
        if use_cache:
            try:
                cached = self.cache.get(task.description, task.project)
            except Exception as e:
                logger.warning(f"AI cache read failed: {e}")
                cached = None
            if cached is not None:
                return cached

        analysis = self.ai_backend.analyze(task)
        if analysis.time_estimate_hours <= 0:
            return None

        estimate = Estimate(
            hours=analysis.time_estimate_hours,
            source=EstimationSource.AI,
            confidence=AI_CONFIDENCE,
            reason=analysis.time_estimate_reason,
            details=EstimateDetails(suggestions=len(analysis.suggestions)),
        )

        if use_cache:
            try:
                self.cache.set(task.description, task.project, estimate, self.config.ai_cache_ttl)
            except Exception as e:
                logger.warning(f"AI cache write failed: {e}")

        return estimate

    def keyword_estimate(self, task: Task) -> Estimate:
        """Keyword/length heuristic; never abstains."""
        return self.classifier.classify(task.description)
