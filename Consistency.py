"""Consistency and habit-strength scores over a trailing window of days.

Two strength formulas coexist and each call site picks one explicitly:

* ``StrengthFormula.RATIO`` backs the cached ``Habit.habit_strength`` written
  on every check-in.
* ``StrengthFormula.ADDITIVE`` backs the on-demand per-habit stats view.
"""
import enum
from datetime import timedelta

from Schedule import count_expected, is_due, utc_today

WINDOW_DAYS = 30
ADDITIVE_START = 100
ADDITIVE_MISS_PENALTY = 5
ADDITIVE_COMPLETION_BONUS = 2


class StrengthFormula(enum.Enum):
    RATIO = "ratio"
    ADDITIVE = "additive"


def _round_half_up(value):
    return int(value + 0.5)


def _clamp(value, low=0, high=100):
    return max(low, min(high, value))


def consistency(completed, expected):
    if expected <= 0:
        return 100
    return _clamp(_round_half_up(100 * completed / expected))


def habit_strength(completed, missed, formula=StrengthFormula.RATIO):
    if formula is StrengthFormula.ADDITIVE:
        score = ADDITIVE_START - ADDITIVE_MISS_PENALTY * missed + ADDITIVE_COMPLETION_BONUS * completed
        return _clamp(score)
    if completed <= 0:
        return 0
    return _clamp(_round_half_up(100 * completed / (completed + missed)))


def window_bounds(today=None, days=WINDOW_DAYS):
    """Inclusive (start, end) of the trailing window ending today."""
    today = today or utc_today()
    return today - timedelta(days=days - 1), today


def completed_days(habit, check_ins, start, end):
    """Distinct due days inside [start, end] that carry a check-in."""
    days = {getattr(c, "date", c) for c in check_ins}
    return {d for d in days if start <= d <= end and is_due(habit, d)}


def window_metrics(habit, check_ins, today=None, days=WINDOW_DAYS):
    start, end = window_bounds(today, days)
    completed = len(completed_days(habit, check_ins, start, end))
    expected = count_expected(habit, start, end)
    missed = max(expected - completed, 0)
    return {
        "start": start,
        "end": end,
        "completed": completed,
        "expected": expected,
        "missed": missed,
        "consistency": consistency(completed, expected),
    }
