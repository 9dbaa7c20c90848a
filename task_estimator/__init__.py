"""Multi-source time estimation for personal task planning.

Reconciles tracked time, historical similarity, AI analysis and keyword
heuristics into one estimate per task.
"""

from .ai_cache import AICache
from .config import EstimatorConfig, load_config
from .estimator import Estimator
from .exceptions import (
    AnalysisError,
    CacheError,
    ConfigError,
    EstimationError,
    MissingDependencyError,
    SyncError,
    TaskEstimatorError,
    TrackedTimeError,
)
from .interfaces import AIBackendInterface, HistoricalStoreInterface, TrackedTimeSourceInterface
from .keyword_classifier import KeywordClassifier
from .models import AccuracyStats, Estimate, EstimateDetails, EstimationSource, SyncResult, Task
from .urgency import calculate_urgency

__version__ = "0.1.0"

__all__ = [
    "AICache",
    "AIBackendInterface",
    "AccuracyStats",
    "AnalysisError",
    "CacheError",
    "ConfigError",
    "Estimate",
    "EstimateDetails",
    "EstimationError",
    "EstimationSource",
    "Estimator",
    "EstimatorConfig",
    "HistoricalStoreInterface",
    "KeywordClassifier",
    "MissingDependencyError",
    "SyncError",
    "SyncResult",
    "Task",
    "TaskEstimatorError",
    "TrackedTimeError",
    "TrackedTimeSourceInterface",
    "calculate_urgency",
    "load_config",
]
