"""Tests for Review.py: weekly totals and insight messages."""

from datetime import timedelta
from types import SimpleNamespace

from Review import build_weekly_review, weekly_review
from conftest import TODAY, days_back


def _habit(habit_id, title, schedule_type="daily", **config):
    return SimpleNamespace(id=habit_id, title=title, schedule_type=schedule_type, schedule_config=config)


def test_no_habits_prompts_to_create():
    review = build_weekly_review([], {}, today=TODAY)

    assert review["perHabit"] == []
    assert review["totals"] == {"totalCompleted": 0, "totalExpected": 0, "overallConsistency": 100}
    assert len(review["insights"]) == 1
    assert "Create one" in review["insights"][0]


def test_window_is_trailing_seven_days():
    review = build_weekly_review([], {}, today=TODAY)
    assert review["window"] == {
        "start": (TODAY - timedelta(days=6)).isoformat(),
        "end": TODAY.isoformat(),
    }


def test_perfect_week():
    habits = [_habit(1, "Read"), _habit(2, "Run")]
    check_ins = {1: days_back(7), 2: days_back(7)}

    review = build_weekly_review(habits, check_ins, today=TODAY)

    assert review["totals"]["overallConsistency"] == 100
    assert review["insights"] == ["Perfect week! You completed every habit as planned."]


def test_partial_week_names_worst_habit():
    habits = [_habit(1, "Read"), _habit(2, "Run")]
    check_ins = {1: days_back(7), 2: days_back(2)}

    review = build_weekly_review(habits, check_ins, today=TODAY)

    per_habit = {h["habitId"]: h for h in review["perHabit"]}
    assert per_habit[2]["completed"] == 2
    assert per_habit[2]["expected"] == 7
    assert per_habit[2]["consistency"] == 29
    assert review["totals"] == {"totalCompleted": 9, "totalExpected": 14, "overallConsistency": 64}
    assert review["insights"][0] == "You completed 1 of 2 habits perfectly this week."
    assert '"Run"' in review["insights"][1]
    assert len(review["insights"]) == 2


def test_zero_consistency_gets_no_callout():
    habits = [_habit(1, "Read"), _habit(2, "Run")]
    review = build_weekly_review(habits, {1: days_back(7)}, today=TODAY)
    assert review["insights"] == ["You completed 1 of 2 habits perfectly this week."]


def test_specific_days_habit_uses_its_schedule():
    # Sundays and Wednesdays; TODAY is a Sunday
    habits = [_habit(1, "Swim", "specific_days", daysOfWeek=[0, 3])]
    check_ins = {1: [TODAY, TODAY - timedelta(days=4)]}

    review = build_weekly_review(habits, check_ins, today=TODAY)

    assert review["perHabit"][0]["expected"] == 2
    assert review["perHabit"][0]["completed"] == 2
    assert review["insights"] == ["Perfect week! You completed every habit as planned."]


def test_weekly_review_reads_only_active_habits_of_user(user, other_user, make_habit, add_check_ins):
    active = make_habit(user, title="Read")
    make_habit(user, title="Old", is_active=False)
    foreign = make_habit(other_user, title="Theirs")
    add_check_ins(active, days_back(7))
    add_check_ins(foreign, days_back(3))

    review = weekly_review(user.id, today=TODAY)

    assert [h["title"] for h in review["perHabit"]] == ["Read"]
    assert review["totals"]["totalCompleted"] == 7
