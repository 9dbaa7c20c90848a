"""Core data models for task estimation.

Value objects shared by every estimator component. Estimates are frozen:
adjustments always produce a new copy.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Mapping

from .utils import parse_timestamp


class EstimationSource(str, Enum):
    """Where an estimate came from."""

    TRACKED_TIME = "timewarrior"
    HISTORICAL = "historical"
    AI = "ai"
    KEYWORD = "keywords"
    DEFAULT = "default"


@dataclass(frozen=True)
class Task:
    """Read-only snapshot of a task as supplied by the task store."""

    uuid: str
    description: str
    project: str = ""
    priority: str = ""  # "H" | "M" | "L" | ""
    status: str = "pending"
    due: str | None = None
    tags: tuple[str, ...] = ()

    @property
    def is_completed(self) -> bool:
        """Whether the task has been marked done."""
        return self.status == "completed"

    @property
    def due_at(self) -> datetime | None:
        """Parsed due date, or None if missing or unparseable."""
        return parse_timestamp(self.due)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Task":
        """Create a Task from a taskwarrior export record."""
        return cls(
            uuid=data.get("uuid", ""),
            description=data.get("description", ""),
            project=data.get("project") or "",
            priority=data.get("priority") or "",
            status=data.get("status", "pending"),
            due=data.get("due"),
            tags=tuple(data.get("tags") or ()),
        )


@dataclass(frozen=True)
class EstimateDetails:
    """Structured annotations attached to an estimate.

    Known annotations have their own fields; anything else goes in ``extra``.
    """

    entries: int | None = None
    is_complete: bool | None = None
    suggestions: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Flatten to a plain dictionary, omitting unset fields."""
        data: dict[str, Any] = dict(self.extra)
        if self.entries is not None:
            data["entries"] = self.entries
        if self.is_complete is not None:
            data["is_complete"] = self.is_complete
        if self.suggestions is not None:
            data["suggestions"] = self.suggestions
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EstimateDetails":
        """Rebuild details; unknown keys land in ``extra``."""
        known = {"entries", "is_complete", "suggestions"}
        return cls(
            entries=data.get("entries"),
            is_complete=data.get("is_complete"),
            suggestions=data.get("suggestions"),
            extra={k: v for k, v in data.items() if k not in known},
        )


@dataclass(frozen=True)
class Estimate:
    """A time estimate with its provenance and confidence."""

    hours: float
    source: EstimationSource
    confidence: float  # 0.0 to 1.0, not a calibrated probability
    reason: str
    details: EstimateDetails | None = None

    def with_reason_suffix(self, suffix: str) -> "Estimate":
        """Return a copy with ``suffix`` appended to the reason."""
        return replace(self, reason=self.reason + suffix)

    def scaled(self, factor: float) -> "Estimate":
        """Return a copy with hours multiplied by ``factor``."""
        return replace(self, hours=self.hours * factor)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "hours": self.hours,
            "source": self.source.value,
            "confidence": self.confidence,
            "reason": self.reason,
            "details": self.details.to_dict() if self.details else None,
        }


@dataclass(frozen=True)
class CacheEntry:
    """A cached AI estimate keyed by task fingerprint."""

    fingerprint: str
    estimate: Estimate
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        """Strict expiry: an entry is still valid at exactly ``expires_at``."""
        return now > self.expires_at


@dataclass(frozen=True)
class TrackedEntry:
    """A single timewarrior interval."""

    id: int
    start: datetime
    end: datetime | None
    tags: tuple[str, ...] = ()

    @property
    def duration_hours(self) -> float:
        """Interval length in hours; open intervals count as zero."""
        if self.end is None:
            return 0.0
        return (self.end - self.start).total_seconds() / 3600

    @property
    def task_uuid(self) -> str:
        """Task UUID from the ``task_<uuid>`` tag, or empty string."""
        for tag in self.tags:
            if tag.startswith("task_"):
                return tag[len("task_"):]
        return ""

    @property
    def project(self) -> str:
        """Project name from the ``project_<name>`` tag, or empty string."""
        for tag in self.tags:
            if tag.startswith("project_"):
                return tag[len("project_"):].replace("_", " ")
        return ""

    @property
    def description(self) -> str:
        """First non-special tag, with underscores turned back into spaces."""
        for tag in self.tags:
            if tag.startswith("task_") or tag.startswith("project_"):
                continue
            return tag.replace("_", " ")
        return ""


@dataclass(frozen=True)
class HistoricalEntry:
    """A completed task as recorded in the historical store."""

    uuid: str
    description: str
    project: str = ""
    priority: str = ""
    estimated_hours: float = 0.0
    actual_hours: float = 0.0
    completed_at: datetime | None = None


@dataclass(frozen=True)
class SimilarTaskMatch:
    """A historical entry ranked by similarity to a task."""

    entry: HistoricalEntry
    score: float
    match_type: str = ""


@dataclass
class SyncResult:
    """Result of syncing the historical store from the time log.

    Attributes:
        new_entries: Entries created in the historical store
        updated_entries: Existing entries whose hours were updated
        total_processed: Intervals read from the time log
    """

    new_entries: int = 0
    updated_entries: int = 0
    total_processed: int = 0

    def summary(self) -> str:
        """Generate human-readable summary."""
        return f"Sync completed: {self.new_entries} new entries, {self.updated_entries} updated"


@dataclass
class AccuracyStats:
    """Aggregate estimation accuracy derived from the historical store."""

    total_tasks: int = 0
    average_actual: float = 0.0
    average_estimated: float = 0.0
    average_error_pct: float = 0.0
    overall_accuracy: float = 0.0  # 1.0 = perfect, <1 = overestimate, >1 = underestimate

    @classmethod
    def from_aggregate(cls, data: Mapping[str, Any]) -> "AccuracyStats":
        """Build stats from the historical store aggregate query."""
        stats = cls(
            total_tasks=int(data.get("total_tasks") or 0),
            average_actual=float(data.get("avg_actual_hours") or 0.0),
            average_estimated=float(data.get("avg_estimated_hours") or 0.0),
            average_error_pct=float(data.get("avg_error_percent") or 0.0),
        )
        if stats.average_estimated > 0:
            stats.overall_accuracy = stats.average_actual / stats.average_estimated
        return stats


@dataclass
class TaskSuggestion:
    """A single AI suggestion about a task."""

    type: str
    current: str = ""
    suggested: str = ""
    reason: str = ""
    confidence: float = 0.0


@dataclass
class TaskAnalysis:
    """Complete AI analysis of a task."""

    task_uuid: str
    summary: str = ""
    suggestions: list[TaskSuggestion] = field(default_factory=list)
    time_estimate_hours: float = 0.0
    time_estimate_reason: str = ""


@dataclass(frozen=True)
class LearningRecord:
    """A completed task with its estimate compared against actual time."""

    task_uuid: str
    description: str
    project: str
    estimated_hours: float
    actual_hours: float
    estimate_source: EstimationSource
    completed_at: datetime
    accuracy_ratio: float  # actual / estimated
