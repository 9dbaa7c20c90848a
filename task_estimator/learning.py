"""Learning from completed tasks.

Closes the feedback loop: completions are recorded in the historical
store so later similarity estimates improve, and selected estimates pass
through a calibration hook before being returned.

Calibration is not data-driven yet. calibration_factor() always returns
1.0, which makes apply_learning() a no-op in practice; the hook stays so
callers already route every estimate through it.
"""

import logging
import re
from datetime import datetime
from typing import Any, Callable

from .exceptions import EstimationError, MissingDependencyError
from .interfaces import HistoricalStoreInterface
from .models import AccuracyStats, Estimate, EstimationSource, LearningRecord, Task
from .utils import utc_now

logger = logging.getLogger(__name__)

NEUTRAL_CALIBRATION = 1.0
AMBIGUOUS_TERMS = ("fix", "update", "improve", "work on")
LONG_DESCRIPTION_LENGTH = 100


def accuracy_ratio(estimated_hours: float, actual_hours: float) -> float:
    """actual / estimated, or 1.0 when there was no estimate."""
    if estimated_hours > 0:
        return actual_hours / estimated_hours
    return 1.0


class CalibrationLearner:
    """Record completions and calibrate estimates against past accuracy."""

    def __init__(
        self,
        historical_store: HistoricalStoreInterface | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.historical_store = historical_store
        self.clock = clock

    def _require_store(self) -> HistoricalStoreInterface:
        if self.historical_store is None:
            raise MissingDependencyError("No time database available")
        return self.historical_store

    def record_completion(
        self,
        task: Task,
        estimated_hours: float,
        actual_hours: float,
        source: EstimationSource,
    ) -> LearningRecord:
        """Record a completed task for future estimates.

        Args:
            task: Completed task
            estimated_hours: Estimate that was used
            actual_hours: Time actually spent
            source: Where the estimate came from

        Returns:
            LearningRecord with the accuracy ratio

        Raises:
            MissingDependencyError: If there is no historical store
            EstimationError: If the historical store fails to record
        """
        store = self._require_store()
        try:
            store.record_completion(task, estimated_hours, actual_hours)
        except Exception as e:
            raise EstimationError(f"failed to record completion: {e}", {"task_uuid": task.uuid}) from e

        record = self.build_learning_record(task, estimated_hours, actual_hours, source)
        try:
            self.record_learning_metrics(record)
        except Exception as e:
            # Secondary metrics never fail the completion itself
            logger.warning(f"Failed to record learning metrics for {task.uuid}: {e}")
        return record

    def build_learning_record(
        self,
        task: Task,
        estimated_hours: float,
        actual_hours: float,
        source: EstimationSource,
    ) -> LearningRecord:
        """Compare an estimate with the actual time spent."""
        return LearningRecord(
            task_uuid=task.uuid,
            description=task.description,
            project=task.project,
            estimated_hours=estimated_hours,
            actual_hours=actual_hours,
            estimate_source=source,
            completed_at=self.clock(),
            accuracy_ratio=accuracy_ratio(estimated_hours, actual_hours),
        )

    def record_learning_metrics(self, record: LearningRecord) -> None:
        """Bookkeeping for accuracy by source; not persisted yet."""
        logger.debug(
            f"Estimate accuracy for {record.task_uuid} ({record.estimate_source.value}): "
            f"{record.accuracy_ratio:.2f}"
        )

    def calibration_factor(self, source: EstimationSource, project: str) -> float:
        """Calibration multiplier for a source/project combination.

        Always neutral (1.0): calibration from historical accuracy is not
        implemented.
        """
        return NEUTRAL_CALIBRATION

    def apply_learning(self, estimate: Estimate, task: Task) -> Estimate:
        """Return a calibrated copy of the estimate.

        When the factor differs from 1.0 the reason notes the adjustment.
        """
        factor = self.calibration_factor(estimate.source, task.project)
        calibrated = estimate.scaled(factor)

        if factor != NEUTRAL_CALIBRATION:
            direction = "adjusted up" if factor > 1.0 else "adjusted down"
            calibrated = calibrated.with_reason_suffix(
                f" ({direction} {abs(factor - 1.0) * 100:.0f}% based on historical accuracy)"
            )
        return calibrated

    def estimation_accuracy(self, source: EstimationSource | None = None, project_filter: str = "") -> AccuracyStats:
        """Aggregate accuracy statistics from the historical store.

        The store's aggregate is not broken down by source or project, so
        both filters are accepted but not applied.

        Raises:
            MissingDependencyError: If there is no historical store
        """
        store = self._require_store()
        if source is not None or project_filter:
            logger.debug(
                f"Accuracy filters not applied (source={source}, project={project_filter!r}), "
                "returning overall accuracy"
            )
        return AccuracyStats.from_aggregate(store.estimation_accuracy())

    def project_accuracy(self, project_name: str) -> dict[str, Any]:
        """Per-project accuracy; a placeholder until the store supports it."""
        return {
            "project": project_name,
            "status": "learning metrics pending implementation",
        }

    def suggest_improvements(self, task: Task) -> list[str]:
        """Advice for making a task easier to estimate."""
        suggestions = []
        description = task.description.lower()

        for term in AMBIGUOUS_TERMS:
            if re.search(rf"\b{re.escape(term)}\b", description):
                suggestions.append(
                    f"Task contains ambiguous term '{term}' - consider being more specific for better estimates"
                )

        if len(task.description) > LONG_DESCRIPTION_LENGTH:
            suggestions.append(
                "Long task description - consider breaking into subtasks for more accurate estimates"
            )

        if task.project:
            suggestions.append(
                f"Track time with 'timew start task_{task.uuid}' for better future estimates"
            )

        return suggestions
