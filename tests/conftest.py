"""
Pytest configuration and shared fixtures for the habit tracker tests.
"""

from datetime import date, datetime, timedelta

import pytest

from app import create_app
from config import TestConfig
from models import db, User, Habit, CheckIn, UserStats
from Authentication import generate_token

# 2026-03-01 is a Sunday (weekday index 0)
TODAY = date(2026, 3, 1)
NOW = datetime(2026, 3, 1, 12, 0, 0)


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def clock(monkeypatch):
    """Freeze the UTC clock everywhere it is read. Call ``clock(dt)`` to move it."""
    current = {"now": NOW}

    def now():
        return current["now"]

    for target in ("Schedule.utc_now", "Ingestion.utc_now", "CheckIn.utc_now"):
        monkeypatch.setattr(target, now)

    def set_now(value):
        current["now"] = value

    return set_now


def _make_user(username):
    user = User(username=username, email=f"{username}@example.com", password="x")
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def user(app):
    return _make_user("alice")


@pytest.fixture
def other_user(app):
    return _make_user("bob")


@pytest.fixture
def auth_headers(user):
    return {"Authorization": f"Bearer {generate_token(user.id, user.email)}"}


@pytest.fixture
def make_habit(app):
    def _make(owner, title="Read", schedule_type="daily", schedule_config=None,
              habit_type="yes_no", is_active=True):
        habit = Habit(
            user_id=owner.id,
            title=title,
            habit_type=habit_type,
            schedule_type=schedule_type,
            schedule_config=schedule_config or {},
            is_active=is_active,
        )
        db.session.add(habit)
        db.session.commit()
        return habit
    return _make


@pytest.fixture
def add_check_ins(app):
    """Insert raw check-ins for the given days without running the pipeline."""
    def _add(habit, days):
        for day in days:
            db.session.add(CheckIn(
                habit_id=habit.id,
                user_id=habit.user_id,
                date=day,
                completed_at=datetime.combine(day, datetime.min.time()) + timedelta(hours=9),
                value=1.0,
            ))
        db.session.commit()
    return _add


def days_back(n, start=TODAY):
    """n consecutive days ending at start (inclusive), most recent first."""
    return [start - timedelta(days=i) for i in range(n)]


def stats_for(user):
    return UserStats.query.filter_by(user_id=user.id).first()
