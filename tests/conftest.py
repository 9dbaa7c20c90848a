"""Pytest configuration and fixtures for Task Estimator tests."""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from task_estimator.config import EstimatorConfig
from task_estimator.interfaces import (
    AIBackendInterface,
    HistoricalStoreInterface,
    TrackedTimeSourceInterface,
)
from task_estimator.models import SyncResult, Task, TaskAnalysis, TaskSuggestion, TrackedEntry

TASK_UUID = "0f4c1e5a-3b2d-4c8e-9a7f-2d6b8e1c4a90"


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


def make_entry(hours: float, entry_id: int = 1, task_uuid: str = TASK_UUID) -> TrackedEntry:
    """Closed timewarrior interval of the given length."""
    start = datetime(2025, 1, 14, 9, 0, tzinfo=timezone.utc)
    return TrackedEntry(
        id=entry_id,
        start=start,
        end=start + timedelta(hours=hours),
        tags=(f"task_{task_uuid}",),
    )


@pytest.fixture
def now() -> datetime:
    """Fixed reference time."""
    return datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(now: datetime) -> FakeClock:
    """Controllable clock starting at ``now``."""
    return FakeClock(now)


@pytest.fixture
def sample_task() -> Task:
    """Open task with a project."""
    return Task(
        uuid=TASK_UUID,
        description="Implement feature X",
        project="work",
        priority="M",
    )


@pytest.fixture
def completed_task(sample_task: Task) -> Task:
    """Same task, marked done."""
    return Task(
        uuid=sample_task.uuid,
        description=sample_task.description,
        project=sample_task.project,
        priority=sample_task.priority,
        status="completed",
    )


@pytest.fixture
def config() -> EstimatorConfig:
    """Default configuration with AI off."""
    return EstimatorConfig()


@pytest.fixture
def ai_config(cache_path: Path) -> EstimatorConfig:
    """Configuration with AI estimates and caching enabled."""
    return EstimatorConfig(ai_enabled=True, cache_path=cache_path)


@pytest.fixture
def cache_path(tmp_path: Path) -> Path:
    """Location for a temporary AI cache database."""
    return tmp_path / "tasksh" / "ai_cache.sqlite3"


@pytest.fixture
def historical_store() -> MagicMock:
    """Historical store that knows nothing yet."""
    store = MagicMock(spec=HistoricalStoreInterface)
    store.estimate_by_similarity.return_value = (0.0, "", 0.0)
    store.similar_tasks.return_value = []
    store.last_sync_time.return_value = None
    store.sync_from_time_log.return_value = SyncResult(new_entries=3, updated_entries=1, total_processed=4)
    store.estimation_accuracy.return_value = {}
    return store


@pytest.fixture
def tracked_time() -> MagicMock:
    """Time tracking source with no intervals."""
    source = MagicMock(spec=TrackedTimeSourceInterface)
    source.entries_for_task.return_value = []
    source.total_hours.side_effect = lambda entries: sum(e.duration_hours for e in entries)
    return source


@pytest.fixture
def ai_backend() -> MagicMock:
    """AI backend answering 2 hours with two suggestions."""
    backend = MagicMock(spec=AIBackendInterface)
    backend.analyze.return_value = TaskAnalysis(
        task_uuid=TASK_UUID,
        summary="Well scoped",
        suggestions=[
            TaskSuggestion(type="tag", suggested="feature"),
            TaskSuggestion(type="due_date", suggested="2025-01-20"),
        ],
        time_estimate_hours=2.0,
        time_estimate_reason="Similar features took about two hours",
    )
    return backend


@pytest.fixture
def no_timewarrior(monkeypatch: pytest.MonkeyPatch) -> None:
    """Pretend the timew executable is not installed."""
    monkeypatch.setattr("task_estimator.timewarrior.shutil.which", lambda command: None)
