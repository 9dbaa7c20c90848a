"""Keyword-based duration classification.

The estimate of last resort: always produces a bucket from the task
description alone. Buckets are checked in a fixed order and the first
match wins, so routine and quick tasks are recognised before the broader
long/medium vocabularies get a chance to claim them.

Priority (H/M/L) is about urgency and importance, not duration, and is
never consulted here.
"""

from dataclasses import dataclass

from .models import Estimate, EstimationSource


@dataclass(frozen=True)
class KeywordBucket:
    """A duration bucket matched by any of its keywords."""

    name: str
    hours: float
    confidence: float
    reason: str
    keywords: tuple[str, ...]

    def matches(self, description: str) -> bool:
        """Whether any keyword occurs in the (lower-cased) description."""
        return any(keyword in description for keyword in self.keywords)


# Ordered: first match wins
KEYWORD_BUCKETS: tuple[KeywordBucket, ...] = (
    KeywordBucket(
        name="very_quick",
        hours=0.1,  # 6 minutes
        confidence=0.7,
        reason="Very quick personal task",
        keywords=(
            "brush teeth", "take medication", "take heart medication", "drink water",
            "stretch", "check weather", "lock door", "feed pet", "water plants",
            "take vitamins", "quick break", "bathroom", "get coffee",
        ),
    ),
    KeywordBucket(
        name="quick",
        hours=0.25,
        confidence=0.6,
        reason="Quick task based on keywords",
        keywords=(
            "email", "quick call", "respond", "reply", "check", "update status",
            "fix typo", "rename", "quick fix", "stand up", "daily standup",
            "check mail", "take out trash", "dishes", "make bed",
        ),
    ),
    KeywordBucket(
        name="long",
        hours=2.5,
        confidence=0.4,
        reason="Long task based on keywords",
        keywords=(
            "research", "analyze", "investigate", "plan project", "plan workshop",
            "architecture", "integrate", "migration", "presentation", "training",
        ),
    ),
    KeywordBucket(
        name="medium",
        hours=1.5,
        confidence=0.45,
        reason="Medium task based on keywords",
        keywords=(
            "implement feature", "create", "design", "develop", "build",
            "write proposal", "major bug", "refactor", "meeting", "interview",
            "deep work", "focus time", "study", "learn", "practice",
            "comprehensive documentation", "create documentation", "workshop",
        ),
    ),
    KeywordBucket(
        name="short",
        hours=0.5,
        confidence=0.5,
        reason="Short task based on keywords",
        keywords=(
            "review pr", "test", "document", "clean", "organize", "minor",
            "small bug", "update docs", "write notes", "prep", "prepare",
            "grocery", "errands", "workout", "exercise", "walk", "cook",
        ),
    ),
)

CALL_HOURS = 0.5  # Regular calls are 30 min
CALL_CONFIDENCE = 0.5
LENGTH_CONFIDENCE = 0.2

# (exclusive upper bound on description length, hours, reason)
LENGTH_BUCKETS: tuple[tuple[int, float, str], ...] = (
    (15, 0.25, "Very short description suggests quick task"),
    (30, 0.5, "Short description suggests simple task"),
    (60, 1.0, "Medium description suggests standard task"),
)
LONG_DESCRIPTION_HOURS = 1.5
LONG_DESCRIPTION_REASON = "Long description suggests complex task"


class KeywordClassifier:
    """Classify a task description into a duration bucket."""

    def __init__(self, buckets: tuple[KeywordBucket, ...] = KEYWORD_BUCKETS):
        self.buckets = buckets

    def classify(self, description: str) -> Estimate:
        """Classify a description.

        Args:
            description: Free-text task description

        Returns:
            Keyword-sourced Estimate (never None)
        """
        text = description.lower()

        for bucket in self.buckets:
            if bucket.matches(text):
                return self._estimate(bucket.hours, bucket.confidence, bucket.reason)

        if "call" in text and "quick" not in text:
            return self._estimate(CALL_HOURS, CALL_CONFIDENCE, "Standard call duration")

        for max_length, hours, reason in LENGTH_BUCKETS:
            if len(text) < max_length:
                return self._estimate(hours, LENGTH_CONFIDENCE, reason)
        return self._estimate(LONG_DESCRIPTION_HOURS, LENGTH_CONFIDENCE, LONG_DESCRIPTION_REASON)

    @staticmethod
    def _estimate(hours: float, confidence: float, reason: str) -> Estimate:
        return Estimate(
            hours=hours,
            source=EstimationSource.KEYWORD,
            confidence=confidence,
            reason=reason,
        )


def classify_description(description: str) -> Estimate:
    """Classify a description with the default keyword buckets."""
    return KeywordClassifier().classify(description)
