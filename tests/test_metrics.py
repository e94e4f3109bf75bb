"""Tests for habit metrics: totals, rates, streaks, week-over-week change."""

import random

import pytest

from tally.dates import ValidationError, shift_date_string
from tally.metrics import (
    Habit,
    compute_habit_metrics,
    compute_streak,
    completion_rate,
    metrics_for_habit,
    rate_as_of,
)


def _days(start: str, count: int) -> frozenset[str]:
    return frozenset(shift_date_string(start, i) for i in range(count))


def _habit(created: str, completed=(), hid: str = "1", title: str = "Run") -> Habit:
    return Habit(id=hid, title=title, created_date=created, completed_dates=frozenset(completed))


# ═══════════════════════════════════════════════════════════════════════════
# Documented scenarios
# ═══════════════════════════════════════════════════════════════════════════

class TestScenarios:
    def test_five_of_five_days(self):
        h = _habit("2025-04-01", _days("2025-04-01", 5))
        m = metrics_for_habit(h, "2025-04-05", baseline_days=7)
        assert m.total_days == 5
        assert m.completed_count == 5
        assert m.completion_rate == 100
        assert m.streak == 5

    def test_missed_today_breaks_streak(self):
        h = _habit("2025-04-01", _days("2025-04-01", 5))
        m = metrics_for_habit(h, "2025-04-06", baseline_days=7)
        assert m.total_days == 6
        assert m.completed_count == 5
        assert m.completion_rate == 83
        assert m.streak == 0

    def test_never_completed(self):
        m = metrics_for_habit(_habit("2025-01-01"), "2025-01-10", baseline_days=7)
        assert m.total_days == 10
        assert m.completed_count == 0
        assert m.completion_rate == 0
        assert m.streak == 0

    def test_baseline_before_creation(self):
        h = _habit("2025-04-01", _days("2025-04-01", 3))
        m = metrics_for_habit(h, "2025-04-05", baseline_days=7)
        assert m.baseline_rate == 0
        assert m.percent_change == m.completion_rate == 60

    def test_malformed_date_yields_no_rows(self):
        good = _habit("2025-04-01", _days("2025-04-01", 2), hid="1")
        bad = _habit("2025-04-01", {"2025-13-40"}, hid="2")
        with pytest.raises(ValidationError):
            compute_habit_metrics([good, bad], "2025-04-05")


# ═══════════════════════════════════════════════════════════════════════════
# Rate
# ═══════════════════════════════════════════════════════════════════════════

class TestCompletionRate:
    def test_rounds_half_up(self):
        assert completion_rate(1, 8) == 13     # 12.5
        assert completion_rate(5, 8) == 63     # 62.5
        assert completion_rate(1, 200) == 1    # 0.5

    def test_rounds_down_below_half(self):
        assert completion_rate(1, 3) == 33
        assert completion_rate(5, 6) == 83

    def test_degenerate_range_is_zero(self):
        assert completion_rate(0, 0) == 0
        assert completion_rate(3, -2) == 0

    def test_denominator_is_elapsed_days(self):
        # uncompleted habit created 10 days ago: 1 completion today = 10%
        h = _habit("2025-01-01", {"2025-01-10"})
        m = metrics_for_habit(h, "2025-01-10", baseline_days=7)
        assert m.completion_rate == 10


# ═══════════════════════════════════════════════════════════════════════════
# Streak
# ═══════════════════════════════════════════════════════════════════════════

class TestStreak:
    def test_stops_at_first_gap(self):
        done = {"2025-04-05", "2025-04-04", "2025-04-02"}
        assert compute_streak(frozenset(done), "2025-04-05", 30) == 2

    def test_zero_when_today_missing(self):
        done = _days("2025-04-01", 4)   # up to 04-04
        assert compute_streak(done, "2025-04-05", 5) == 0

    def test_bounded_by_total_days(self):
        done = _days("2025-03-01", 40)
        assert compute_streak(done, "2025-04-05", 3) == 3

    def test_created_today(self):
        h = _habit("2025-04-05", {"2025-04-05"})
        m = metrics_for_habit(h, "2025-04-05", baseline_days=7)
        assert m.total_days == 1
        assert m.streak == 1
        assert m.completion_rate == 100

    def test_crosses_month_boundary(self):
        done = _days("2025-02-26", 6)   # 02-26 .. 03-03
        assert compute_streak(done, "2025-03-03", 10) == 6


# ═══════════════════════════════════════════════════════════════════════════
# Baseline / percent change
# ═══════════════════════════════════════════════════════════════════════════

class TestPercentChange:
    def test_difference_in_points_not_ratio(self):
        # perfect first week, nothing since
        h = _habit("2025-04-01", _days("2025-04-01", 8))
        m = metrics_for_habit(h, "2025-04-15", baseline_days=7)
        assert m.baseline_rate == 100
        assert m.completion_rate == 53        # 8/15
        assert m.percent_change == -47

    def test_positive_change(self):
        # nothing the first week, every day since
        h = _habit("2025-04-01", _days("2025-04-09", 7))
        m = metrics_for_habit(h, "2025-04-15", baseline_days=7)
        assert m.baseline_rate == 0
        assert m.completion_rate == 47        # 7/15
        assert m.percent_change == 47

    def test_baseline_ignores_later_completions(self):
        h = _habit("2025-04-01", {"2025-04-01", "2025-04-12"})
        assert rate_as_of(h, "2025-04-08") == 13   # 1/8 = 12.5

    def test_baseline_on_creation_day(self):
        h = _habit("2025-04-08", {"2025-04-08"})
        assert rate_as_of(h, "2025-04-08") == 100

    def test_default_window_from_config(self, monkeypatch):
        import tally.config as cfg
        monkeypatch.setattr(cfg, "BASELINE_DAYS", 2)
        h = _habit("2025-04-01", _days("2025-04-01", 3))
        m = metrics_for_habit(h, "2025-04-05")
        # as of 04-03: 3/3
        assert m.baseline_rate == 100


# ═══════════════════════════════════════════════════════════════════════════
# Edge cases and invariants
# ═══════════════════════════════════════════════════════════════════════════

class TestEdgeCases:
    def test_created_after_today(self):
        h = _habit("2025-04-10")
        m = metrics_for_habit(h, "2025-04-05", baseline_days=7)
        assert m.total_days <= 0
        assert m.completion_rate == 0
        assert m.streak == 0
        assert m.percent_change == 0

    def test_completion_before_start_not_counted(self):
        h = _habit("2025-04-05", {"2025-04-01", "2025-04-05"})
        m = metrics_for_habit(h, "2025-04-05", baseline_days=7)
        assert m.completed_count == 1
        assert m.completion_rate == 100

    def test_output_keeps_input_order(self):
        habits = [
            _habit("2025-04-03", hid="b", title="B"),
            _habit("2025-04-01", hid="a", title="A"),
        ]
        result = compute_habit_metrics(habits, "2025-04-05")
        assert [m.id for m in result] == ["b", "a"]

    def test_empty_input(self):
        assert compute_habit_metrics([], "2025-04-05") == []

    def test_bad_today_raises(self):
        with pytest.raises(ValidationError):
            compute_habit_metrics([_habit("2025-04-01")], "2025-04-31")

    def test_bad_created_date_raises(self):
        with pytest.raises(ValidationError):
            compute_habit_metrics([_habit("2025/04/01")], "2025-04-05")

    def test_bounds_hold_for_random_histories(self):
        rng = random.Random(1234)
        today = "2025-06-30"
        habits = []
        for i in range(50):
            age = rng.randint(1, 120)
            created = shift_date_string(today, -(age - 1))
            done = {shift_date_string(created, d) for d in range(age) if rng.random() < 0.6}
            habits.append(_habit(created, done, hid=str(i)))

        for h, m in zip(habits, compute_habit_metrics(habits, today, baseline_days=7)):
            assert 0 <= m.completion_rate <= 100
            assert 0 <= m.streak <= m.total_days
            assert -100 <= m.percent_change <= 100
            assert m.completed_count == len(h.completed_dates)
            if today not in h.completed_dates:
                assert m.streak == 0
