"""Pick one estimate out of the collected candidates."""

from collections.abc import Iterable

from .config import EstimatorConfig
from .models import Estimate, EstimationSource

DEFAULT_CONFIDENCE = 0.1
DEFAULT_REASON = "No reliable estimates available, using default"


def rank_candidates(candidates: Iterable[Estimate], prefer_tracked_time: bool) -> list[Estimate]:
    """Order candidates best-first.

    Tracked-time candidates come first when preferred; otherwise (and
    within each group) higher confidence wins. The sort is stable, so
    ties keep collection order.
    """
    def sort_key(estimate: Estimate) -> tuple[int, float]:
        preferred = prefer_tracked_time and estimate.source == EstimationSource.TRACKED_TIME
        return (0 if preferred else 1, -estimate.confidence)

    return sorted(candidates, key=sort_key)


def default_estimate(config: EstimatorConfig) -> Estimate:
    """Fallback used when no candidate is confident enough."""
    return Estimate(
        hours=config.fallback_hours,
        source=EstimationSource.DEFAULT,
        confidence=DEFAULT_CONFIDENCE,
        reason=DEFAULT_REASON,
    )


def select_estimate(candidates: Iterable[Estimate], config: EstimatorConfig) -> Estimate:
    """Return the best candidate meeting the confidence floor, else the default.

    Always returns exactly one estimate.
    """
    for estimate in rank_candidates(candidates, config.prefer_tracked_time):
        if estimate.confidence >= config.min_confidence:
            return estimate
    return default_estimate(config)
