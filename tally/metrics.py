"""Habit metrics — completion rate, streak and week-over-week trend.

Pure functions over an already-loaded snapshot of habits. Nothing here
touches the database or caches results: every dashboard render recomputes
from the current completion sets, O(habits x tracked days).
"""

import logging
from dataclasses import dataclass, field

from tally.dates import ValidationError, days_between, parse_local_date_string, shift_date_string

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Habit:
    """A habit row plus its completion days, as handed over by the db layer."""
    id: str
    title: str
    created_date: str                   # YYYY-MM-DD, local
    completed_dates: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class HabitMetrics:
    id: str
    title: str
    total_days: int
    completed_count: int
    completion_rate: int        # 0..100
    streak: int                 # 0..total_days
    baseline_rate: int
    percent_change: int         # percentage points, -100..100


def completion_rate(completed: int, total_days: int) -> int:
    """Integer percentage, rounded half up. 0 for an empty or inverted range."""
    if total_days <= 0:
        return 0
    # round-half-up in integer space: floor(x + 0.5) with x = 100c/t
    return (200 * completed + total_days) // (2 * total_days)


def _count_between(completed_dates: frozenset[str], start: str, end: str) -> int:
    # YYYY-MM-DD compares correctly as plain strings
    return sum(1 for d in completed_dates if start <= d <= end)


def compute_streak(completed_dates: frozenset[str], today: str, total_days: int) -> int:
    """Consecutive completed days ending at today, at most total_days long."""
    streak = 0
    day = today
    for _ in range(max(total_days, 0)):
        if day not in completed_dates:
            break
        streak += 1
        day = shift_date_string(day, -1)
    return streak


def rate_as_of(habit: Habit, as_of: str) -> int:
    """Completion rate the habit had on a given day.

    Recomputed from the completion set filtered to days <= as_of. A day
    before the habit existed has no rate, which is reported as 0.
    """
    elapsed = days_between(habit.created_date, as_of)
    if elapsed < 0:
        return 0
    completed = _count_between(habit.completed_dates, habit.created_date, as_of)
    return completion_rate(completed, elapsed + 1)


def _validate(habit: Habit) -> None:
    parse_local_date_string(habit.created_date)
    for d in habit.completed_dates:
        parse_local_date_string(d)


def metrics_for_habit(habit: Habit, today: str, baseline_days: int | None = None) -> HabitMetrics:
    if baseline_days is None:
        from tally.config import BASELINE_DAYS
        baseline_days = BASELINE_DAYS

    total_days = days_between(habit.created_date, today) + 1
    completed_count = _count_between(habit.completed_dates, habit.created_date, today)
    rate = completion_rate(completed_count, total_days)
    streak = compute_streak(habit.completed_dates, today, total_days)
    baseline = rate_as_of(habit, shift_date_string(today, -baseline_days))

    return HabitMetrics(
        id=habit.id,
        title=habit.title,
        total_days=total_days,
        completed_count=completed_count,
        completion_rate=rate,
        streak=streak,
        baseline_rate=baseline,
        percent_change=rate - baseline,
    )


def compute_habit_metrics(habits: list[Habit], today: str,
                          baseline_days: int | None = None) -> list[HabitMetrics]:
    """Metrics for every habit, in input order.

    All dates are validated before anything is computed, so a malformed
    date raises ValidationError and no rows are returned at all.
    """
    habits = list(habits)
    parse_local_date_string(today)
    for h in habits:
        try:
            _validate(h)
        except ValidationError:
            log.warning("Habit %s has a malformed date, refusing to compute metrics", h.id)
            raise
    return [metrics_for_habit(h, today, baseline_days) for h in habits]
