"""Exception hierarchy for the task estimator.

Provides categorized exceptions for configuration, persistence and
collaborator failures.
"""

from typing import Any


class TaskEstimatorError(Exception):
    """Base exception for all task estimator errors."""

    def __init__(self, message: str, details: Any = None):
        """Initialize exception.

        Args:
            message: Error message
            details: Additional error details
        """
        super().__init__(message)
        self.details = details


class ConfigError(TaskEstimatorError):
    """Configuration-related errors."""
    pass


class EstimationError(TaskEstimatorError):
    """Unrecoverable estimation errors."""
    pass


class MissingDependencyError(EstimationError):
    """A required collaborator (e.g. the historical store) is not available."""
    pass


class CacheError(TaskEstimatorError):
    """AI estimate cache persistence errors."""
    pass


class TrackedTimeError(TaskEstimatorError):
    """Time tracking (timewarrior) interaction errors."""
    pass


class SyncError(TaskEstimatorError):
    """Historical store synchronization errors."""
    pass


class AnalysisError(TaskEstimatorError):
    """AI analysis response parsing errors."""
    pass
