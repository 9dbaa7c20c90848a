"""Tests for estimate sources and candidate collection."""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from conftest import make_entry

from task_estimator.ai_cache import AICache
from task_estimator.config import EstimatorConfig
from task_estimator.exceptions import CacheError, TrackedTimeError
from task_estimator.models import (
    Estimate,
    EstimationSource,
    HistoricalEntry,
    SimilarTaskMatch,
    Task,
    TaskAnalysis,
)
from task_estimator.sources import SourceCollector


def similar(actual_hours: float, score: float) -> SimilarTaskMatch:
    return SimilarTaskMatch(
        entry=HistoricalEntry(uuid="h", description="Implement feature Y", actual_hours=actual_hours),
        score=score,
        match_type="description",
    )


class TestTrackedTimeSource:
    """Tests for estimates from tracked time."""

    def test_abstains_without_entries(self, config, tracked_time, sample_task) -> None:
        """Test no tracked intervals means no candidate."""
        collector = SourceCollector(config, tracked_time=tracked_time)
        assert collector.tracked_time_estimate(sample_task) is None

    def test_abstains_without_source(self, config, sample_task) -> None:
        """Test no tracked time source means no candidate."""
        assert SourceCollector(config).tracked_time_estimate(sample_task) is None

    def test_completed_task(self, config, tracked_time, completed_task) -> None:
        """Test completed tasks report tracked hours with high confidence."""
        tracked_time.entries_for_task.return_value = [make_entry(1.5), make_entry(1.5, entry_id=2)]
        collector = SourceCollector(config, tracked_time=tracked_time)

        estimate = collector.tracked_time_estimate(completed_task)
        assert estimate.hours == 3.0
        assert estimate.confidence == 0.9
        assert estimate.reason == "Already tracked 3.0 hours"
        assert estimate.details.entries == 2
        assert estimate.details.is_complete is True
        tracked_time.entries_for_task.assert_called_once_with(completed_task.uuid)

    def test_open_task_projected_from_similar(self, config, tracked_time, historical_store, sample_task) -> None:
        """Test open tasks project total hours from similar completed tasks."""
        tracked_time.entries_for_task.return_value = [make_entry(1.0)]
        historical_store.similar_tasks.return_value = [similar(4.0, 1.0), similar(2.0, 1.0)]
        collector = SourceCollector(config, tracked_time=tracked_time, historical_store=historical_store)

        # (0.25 + 0.5) / 2 = 37.5% complete
        estimate = collector.tracked_time_estimate(sample_task)
        assert estimate.hours == pytest.approx(1.0 / 0.375)
        assert estimate.confidence == 0.7
        assert estimate.reason == "Tracked 1.0 hours (estimated 38% complete)"
        historical_store.similar_tasks.assert_called_once_with(sample_task, 5)

    def test_open_task_without_history(self, config, tracked_time, sample_task) -> None:
        """Test open tasks without history report raw tracked hours."""
        tracked_time.entries_for_task.return_value = [make_entry(2.0)]
        collector = SourceCollector(config, tracked_time=tracked_time)

        estimate = collector.tracked_time_estimate(sample_task)
        assert estimate.hours == 2.0
        assert estimate.confidence == 0.5
        assert estimate.reason == "Already tracked 2.0 hours (in progress)"
        assert estimate.details.is_complete is False

    def test_abstains_on_tracking_error(self, config, tracked_time, sample_task) -> None:
        """Test a failing time tracker is an abstention."""
        tracked_time.entries_for_task.side_effect = TrackedTimeError("timew missing")
        collector = SourceCollector(config, tracked_time=tracked_time)
        assert collector.tracked_time_estimate(sample_task) is None


class TestCompletionPercentage:
    """Tests for progress estimation from similar tasks."""

    def test_capped_per_match(self, config, historical_store, sample_task) -> None:
        """Test each match contributes at most its similarity score."""
        historical_store.similar_tasks.return_value = [similar(1.0, 0.8)]
        collector = SourceCollector(config, historical_store=historical_store)
        assert collector.estimate_completion_percentage(sample_task, 5.0) == pytest.approx(0.8)

    def test_ignores_matches_without_actual_hours(self, config, historical_store, sample_task) -> None:
        """Test matches with no recorded hours do not count."""
        historical_store.similar_tasks.return_value = [similar(0.0, 1.0), similar(4.0, 1.0)]
        collector = SourceCollector(config, historical_store=historical_store)
        assert collector.estimate_completion_percentage(sample_task, 1.0) == pytest.approx(0.25)

    def test_store_error_gives_zero(self, config, historical_store, sample_task) -> None:
        """Test a failing store yields no progress estimate."""
        historical_store.similar_tasks.side_effect = RuntimeError("db locked")
        collector = SourceCollector(config, historical_store=historical_store)
        assert collector.estimate_completion_percentage(sample_task, 1.0) == 0.0


class TestHistoricalSource:
    """Tests for similarity estimates."""

    def test_uses_store_estimate(self, config, historical_store, sample_task) -> None:
        """Test the store's answer is passed through."""
        historical_store.estimate_by_similarity.return_value = (2.5, "Based on 3 similar tasks", 0.65)
        collector = SourceCollector(config, historical_store=historical_store)

        estimate = collector.historical_estimate(sample_task)
        assert estimate == Estimate(
            hours=2.5,
            source=EstimationSource.HISTORICAL,
            confidence=0.65,
            reason="Based on 3 similar tasks",
        )

    def test_abstains_on_zero_hours(self, config, historical_store, sample_task) -> None:
        """Test a zero-hour answer is an abstention."""
        collector = SourceCollector(config, historical_store=historical_store)
        assert collector.historical_estimate(sample_task) is None

    def test_abstains_on_error(self, config, historical_store, sample_task) -> None:
        """Test store errors are abstentions."""
        historical_store.estimate_by_similarity.side_effect = RuntimeError("db locked")
        collector = SourceCollector(config, historical_store=historical_store)
        assert collector.historical_estimate(sample_task) is None


class TestAISource:
    """Tests for AI estimates and their caching."""

    def test_disabled_by_config(self, config, ai_backend, sample_task) -> None:
        """Test AI is not consulted unless enabled."""
        collector = SourceCollector(config, ai_backend=ai_backend)
        assert collector.ai_estimate(sample_task) is None
        ai_backend.analyze.assert_not_called()

    def test_use_ai_flag_also_enables(self, ai_backend, sample_task) -> None:
        """Test the legacy use_ai flag enables AI too."""
        collector = SourceCollector(EstimatorConfig(use_ai=True), ai_backend=ai_backend)
        assert collector.ai_estimate(sample_task).source == EstimationSource.AI

    def test_miss_calls_backend_and_caches(self, ai_config, ai_backend, cache_path, clock, sample_task) -> None:
        """Test a cache miss asks the backend and stores the answer for 7 days."""
        cache = AICache(cache_path, clock=clock)
        collector = SourceCollector(ai_config, ai_backend=ai_backend, cache=cache)

        estimate = collector.ai_estimate(sample_task)
        assert estimate.hours == 2.0
        assert estimate.confidence == 0.6
        assert estimate.reason == "Similar features took about two hours"
        assert estimate.details.suggestions == 2

        entry = cache.get_entry(sample_task.description, sample_task.project)
        assert entry.expires_at - entry.created_at == timedelta(days=7)

    def test_hit_skips_backend(self, ai_config, ai_backend, cache_path, clock, sample_task) -> None:
        """Test a cache hit is returned without calling the backend."""
        cache = AICache(cache_path, clock=clock)
        collector = SourceCollector(ai_config, ai_backend=ai_backend, cache=cache)

        collector.ai_estimate(sample_task)
        cached = collector.ai_estimate(sample_task)

        assert ai_backend.analyze.call_count == 1
        assert cached.hours == 2.0
        assert cached.reason.endswith(" (cached)")

    def test_caching_disabled(self, ai_backend, cache_path, clock, sample_task) -> None:
        """Test nothing is written when caching is turned off."""
        cache = AICache(cache_path, clock=clock)
        config = EstimatorConfig(ai_enabled=True, cache_ai_estimates=False)
        collector = SourceCollector(config, ai_backend=ai_backend, cache=cache)

        collector.ai_estimate(sample_task)
        assert cache.count() == 0

    def test_cache_failures_ignored(self, ai_config, ai_backend, sample_task) -> None:
        """Test cache read and write failures do not lose the AI estimate."""
        cache = MagicMock(spec=AICache)
        cache.get.side_effect = CacheError("locked")
        cache.set.side_effect = CacheError("read-only")
        collector = SourceCollector(ai_config, ai_backend=ai_backend, cache=cache)

        estimate = collector.ai_estimate(sample_task)
        assert estimate.hours == 2.0
        cache.set.assert_called_once()

    def test_abstains_on_non_positive_hours(self, ai_config, ai_backend, sample_task) -> None:
        """Test a zero-hour AI answer is an abstention."""
        ai_backend.analyze.return_value = TaskAnalysis(task_uuid=sample_task.uuid)
        collector = SourceCollector(ai_config, ai_backend=ai_backend)
        assert collector.ai_estimate(sample_task) is None

    def test_abstains_on_backend_error(self, ai_config, ai_backend, sample_task) -> None:
        """Test AI failures are abstentions."""
        ai_backend.analyze.side_effect = RuntimeError("rate limited")
        collector = SourceCollector(ai_config, ai_backend=ai_backend)
        assert collector.ai_estimate(sample_task) is None


class TestCollect:
    """Tests for gathering all candidates."""

    def test_keyword_only(self, config) -> None:
        """Test the keyword source always contributes."""
        estimates = SourceCollector(config).collect(Task(uuid="", description="Brush teeth"))
        assert [e.source for e in estimates] == [EstimationSource.KEYWORD]

    def test_collection_order(
        self, ai_config, tracked_time, historical_store, ai_backend, sample_task
    ) -> None:
        """Test candidates come back in source order."""
        tracked_time.entries_for_task.return_value = [make_entry(1.0)]
        historical_store.estimate_by_similarity.return_value = (2.0, "Similar tasks", 0.5)
        collector = SourceCollector(
            ai_config,
            tracked_time=tracked_time,
            historical_store=historical_store,
            ai_backend=ai_backend,
        )

        sources = [e.source for e in collector.collect(sample_task)]
        assert sources == [
            EstimationSource.TRACKED_TIME,
            EstimationSource.HISTORICAL,
            EstimationSource.AI,
            EstimationSource.KEYWORD,
        ]

    def test_failing_sources_do_not_block_others(
        self, ai_config, tracked_time, historical_store, ai_backend, sample_task
    ) -> None:
        """Test every failing source abstains while the rest still answer."""
        tracked_time.entries_for_task.side_effect = TrackedTimeError("boom")
        historical_store.estimate_by_similarity.side_effect = RuntimeError("boom")
        ai_backend.analyze.side_effect = RuntimeError("boom")
        collector = SourceCollector(
            ai_config,
            tracked_time=tracked_time,
            historical_store=historical_store,
            ai_backend=ai_backend,
        )

        assert [e.source for e in collector.collect(sample_task)] == [EstimationSource.KEYWORD]
