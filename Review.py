import logging

from models import Habit, CheckIn
from Schedule import count_expected, utc_today
from Consistency import completed_days, consistency, window_bounds

logger = logging.getLogger(__name__)

REVIEW_DAYS = 7


def build_insights(per_habit):
    insights = []
    if not per_habit:
        insights.append("You don't have any habits yet. Create one to start building momentum!")
        return insights

    perfect = [h for h in per_habit if h["consistency"] == 100]
    if len(perfect) == len(per_habit):
        insights.append("Perfect week! You completed every habit as planned.")
    elif perfect:
        insights.append(f"You completed {len(perfect)} of {len(per_habit)} habits perfectly this week.")

    worst = min(per_habit, key=lambda h: h["consistency"])
    if 0 < worst["consistency"] < 50:
        insights.append(
            f"\"{worst['title']}\" needs some attention: only {worst['consistency']}% "
            f"consistency this week."
        )
    return insights


def build_weekly_review(habits, check_ins_by_habit, today=None, days=REVIEW_DAYS):
    """Completed vs expected for each habit over the trailing ``days``."""
    start, end = window_bounds(today, days)
    per_habit = []
    for habit in habits:
        completed = len(completed_days(habit, check_ins_by_habit.get(habit.id, []), start, end))
        expected = count_expected(habit, start, end)
        per_habit.append({
            "habitId": habit.id,
            "title": habit.title,
            "completed": completed,
            "expected": expected,
            "consistency": consistency(completed, expected),
        })

    total_completed = sum(h["completed"] for h in per_habit)
    total_expected = sum(h["expected"] for h in per_habit)
    return {
        "window": {"start": start.isoformat(), "end": end.isoformat()},
        "totals": {
            "totalCompleted": total_completed,
            "totalExpected": total_expected,
            "overallConsistency": consistency(total_completed, total_expected),
        },
        "perHabit": per_habit,
        "insights": build_insights(per_habit),
    }


def weekly_review(user_id, today=None, days=REVIEW_DAYS):
    today = today or utc_today()
    start, end = window_bounds(today, days)
    habits = Habit.query.filter_by(user_id=user_id, is_active=True).order_by(Habit.id).all()
    check_ins = CheckIn.query.filter(
        CheckIn.user_id == user_id,
        CheckIn.date >= start,
        CheckIn.date <= end,
    ).all()
    by_habit = {}
    for check_in in check_ins:
        by_habit.setdefault(check_in.habit_id, []).append(check_in)
    logger.debug(f"Weekly review for user {user_id}: {len(habits)} habits, {len(check_ins)} check-ins")
    return build_weekly_review(habits, by_habit, today=today, days=days)
