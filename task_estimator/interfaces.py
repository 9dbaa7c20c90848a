"""Abstract interfaces for the estimator's external collaborators.

Defines contracts for the pluggable components the estimator consumes,
enabling dependency injection and improving testability.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, List, Mapping, Tuple

from .models import SimilarTaskMatch, SyncResult, Task, TaskAnalysis, TrackedEntry


class TrackedTimeSourceInterface(ABC):
    """Abstract interface for time tracking data (e.g. timewarrior)."""

    @abstractmethod
    def entries_for_task(self, task_uuid: str) -> List[TrackedEntry]:
        """Get tracked intervals for a task.

        Args:
            task_uuid: Task identifier

        Returns:
            List of tracked intervals (empty if none)
        """
        pass

    @abstractmethod
    def entries_for_date_range(self, start: datetime, end: datetime) -> List[TrackedEntry]:
        """Get tracked intervals within a date range.

        Args:
            start: Range start
            end: Range end

        Returns:
            List of tracked intervals
        """
        pass

    @abstractmethod
    def total_hours(self, entries: List[TrackedEntry]) -> float:
        """Sum the duration of tracked intervals.

        Args:
            entries: Intervals to sum

        Returns:
            Total hours
        """
        pass


class HistoricalStoreInterface(ABC):
    """Abstract interface for the store of completed-task history.

    How similarity is computed is up to the implementation.
    """

    @abstractmethod
    def estimate_by_similarity(self, task: Task) -> Tuple[float, str, float]:
        """Estimate a task from similar completed tasks.

        Args:
            task: Task to estimate

        Returns:
            Tuple of (hours, reason, confidence); hours is 0 without a match
        """
        pass

    @abstractmethod
    def similar_tasks(self, task: Task, limit: int) -> List[SimilarTaskMatch]:
        """Find completed tasks similar to the given task.

        Args:
            task: Task to match
            limit: Maximum number of matches

        Returns:
            Matches ranked by similarity
        """
        pass

    @abstractmethod
    def record_completion(self, task: Task, estimated_hours: float, actual_hours: float) -> None:
        """Record a completed task with its estimate and actual time.

        Args:
            task: Completed task
            estimated_hours: Estimate used while planning
            actual_hours: Time actually spent
        """
        pass

    @abstractmethod
    def sync_from_time_log(self, client: TrackedTimeSourceInterface, since: datetime) -> SyncResult:
        """Import tracked intervals from the time log.

        Args:
            client: Time tracking source
            since: Only intervals after this time are imported

        Returns:
            SyncResult with new/updated counts
        """
        pass

    @abstractmethod
    def last_sync_time(self) -> datetime | None:
        """When the store was last synced from the time log (None = never)."""
        pass

    @abstractmethod
    def estimation_accuracy(self) -> Mapping[str, Any]:
        """Aggregate accuracy of past estimates.

        Returns:
            Mapping with total_tasks, avg_actual_hours, avg_estimated_hours
            and avg_error_percent
        """
        pass


class AIBackendInterface(ABC):
    """Abstract interface for AI-backed task analysis."""

    @abstractmethod
    def analyze(self, task: Task) -> TaskAnalysis:
        """Analyze a task.

        Args:
            task: Task to analyze

        Returns:
            TaskAnalysis including an hours estimate and its reason
        """
        pass
