import enum
from datetime import timedelta

from Schedule import utc_today


class StreakPolicy(enum.Enum):
    TODAY_ANCHORED = "today_anchored"
    GRACE_ONE_DAY = "grace_one_day"


def _day(entry):
    return getattr(entry, "date", entry)


def _anchor(days, today, policy):
    if policy is StreakPolicy.GRACE_ONE_DAY and days and days[0] != today:
        return today - timedelta(days=1)
    return today


def calculate_streak(check_ins, today=None, policy=StreakPolicy.TODAY_ANCHORED):
    """Consecutive-day streak ending at the anchor day.

    ``check_ins`` are check-in rows (or plain dates) sorted by date descending.
    With the default policy the walk starts at today, so a habit that has not
    been checked in yet today reports 0 even if yesterday was completed.
    """
    today = today or utc_today()
    days = [_day(c) for c in check_ins]
    if not days:
        return 0

    expected = _anchor(days, today, policy)
    streak = 0
    last_counted = None
    for day in days:
        if day == last_counted:
            continue  # same-day duplicate
        if day > expected:
            continue  # future-dated entry
        if day < expected:
            break
        streak += 1
        last_counted = day
        expected = day - timedelta(days=1)
    return streak


def longest_run(check_ins):
    """Longest run of consecutive check-in days anywhere in the history."""
    days = sorted({_day(c) for c in check_ins})
    best = current = 0
    previous = None
    for day in days:
        if previous is not None and day - previous == timedelta(days=1):
            current += 1
        else:
            current = 1
        best = max(best, current)
        previous = day
    return best
