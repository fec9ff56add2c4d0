"""Schedule evaluation: which days a habit is expected, and how many in a range."""
import math
import logging
from datetime import datetime, timedelta, timezone

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def utc_now():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def utc_today():
    return utc_now().date()


def weekday_index(day):
    """Weekday index with 0=Sunday .. 6=Saturday."""
    return day.isoweekday() % 7


def days_in_range(start, end):
    """Inclusive day count between two dates; 0 if end is before start."""
    if end < start:
        return 0
    return (end - start).days + 1


def _config(habit):
    return getattr(habit, "schedule_config", None) or {}


def _days_of_week(habit):
    return {int(d) for d in _config(habit).get("daysOfWeek", [])}


def is_due(habit, day):
    if habit.schedule_type == "specific_days":
        return weekday_index(day) in _days_of_week(habit)
    # daily, times_per_week (any day counts toward the quota) and unknown types
    return True


def count_expected(habit, start, end):
    total_days = days_in_range(start, end)
    if total_days == 0:
        return 0

    if habit.schedule_type == "specific_days":
        days = _days_of_week(habit)
        return sum(
            1 for offset in range(total_days)
            if weekday_index(start + timedelta(days=offset)) in days
        )
    if habit.schedule_type == "times_per_week":
        # Not aligned to calendar weeks
        times_per_week = int(_config(habit).get("timesPerWeek", 1))
        return math.ceil(total_days / 7) * times_per_week
    if habit.schedule_type != "daily":
        logger.debug(f"Unknown schedule type {habit.schedule_type!r}, treating as daily")
    return total_days
