"""Task urgency scoring.

Urgency orders tasks for planning; it is separate from duration and never
feeds an estimate. Scoring is total: a missing or unparseable due date
simply contributes nothing.
"""

from datetime import datetime
from enum import Enum

from .models import Task
from .utils import utc_now

PRIORITY_URGENCY = {"H": 6.0, "M": 1.8, "L": 0.0}
PROJECT_URGENCY = 1.0

# (max days until due, urgency), checked in order
DUE_URGENCY = (
    (0.0, 15.0),   # overdue
    (1.0, 12.0),   # today/tomorrow
    (7.0, 6.0),    # this week
    (30.0, 2.0),   # this month
)

CRITICAL_URGENCY = 20.0
IMPORTANT_URGENCY = 10.0


class UrgencyCategory(str, Enum):
    """Planning bucket derived from urgency."""

    CRITICAL = "critical"
    IMPORTANT = "important"
    FLEXIBLE = "flexible"


def due_urgency(task: Task, now: datetime) -> float:
    """Urgency contributed by the task's due date."""
    due = task.due_at
    if due is None:
        return 0.0

    days_until_due = (due - now).total_seconds() / 86400
    for max_days, urgency in DUE_URGENCY:
        if days_until_due <= max_days:
            return urgency
    return 0.0


def calculate_urgency(task: Task, now: datetime | None = None) -> float:
    """Score a task's urgency from priority, due date and project.

    Args:
        task: Task to score
        now: Reference time (defaults to the current UTC time)

    Returns:
        Urgency score (higher is more urgent)
    """
    now = now or utc_now()
    urgency = PRIORITY_URGENCY.get(task.priority, 0.0)
    urgency += due_urgency(task, now)
    if task.project:
        urgency += PROJECT_URGENCY
    return urgency


def categorize(urgency: float, is_due: bool = False) -> UrgencyCategory:
    """Bucket an urgency score; tasks due now are always critical."""
    if is_due or urgency >= CRITICAL_URGENCY:
        return UrgencyCategory.CRITICAL
    if urgency >= IMPORTANT_URGENCY:
        return UrgencyCategory.IMPORTANT
    return UrgencyCategory.FLEXIBLE
