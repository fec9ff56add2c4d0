"""Check-in ingestion: persist a check-in and rebuild every value derived from it.

A submission is one unit of work. The check-in row, the habit's cached
streak/strength/consistency, the user's stats row and the user's XP/level are
written in a single transaction and committed together; any failure rolls the
whole unit back. Submissions are serialized per user: the user's XP and stats
row are shared by all of their habits, so two concurrent check-ins on different
habits must not both read the same totals.
"""
import math
import logging
import threading
import weakref
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from models import db, User, Habit, CheckIn, UserStats
from errors import NotFoundError, ValidationError
from Schedule import utc_now
from Streak import calculate_streak
from Consistency import StrengthFormula, habit_strength, window_metrics

logger = logging.getLogger(__name__)

XP_BASE = 10
XP_MILESTONE_BONUS = 50
STREAK_MILESTONES = frozenset({7, 14, 30, 60, 90})
RATING_MIN, RATING_MAX = 1, 5
IDEMPOTENCY_KEY_MAX = 64

_registry_lock = threading.Lock()
# Entries vanish once no submission holds the user's lock
_submission_locks = weakref.WeakValueDictionary()


@contextmanager
def submission_lock(user_id):
    with _registry_lock:
        lock = _submission_locks.get(user_id)
        if lock is None:
            lock = threading.Lock()
            _submission_locks[user_id] = lock
    with lock:
        yield


def xp_for_streak(streak):
    if streak in STREAK_MILESTONES:
        return XP_BASE + XP_MILESTONE_BONUS
    return XP_BASE


def level_for_xp(total_xp):
    return math.floor(math.sqrt(max(total_xp, 0) / 100))


def clamp_rating(value, field):
    if value is None:
        return None
    try:
        rating = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer between {RATING_MIN} and {RATING_MAX}")
    return max(RATING_MIN, min(RATING_MAX, rating))


def normalize_value(habit, value):
    if value is None:
        return 1.0 if habit.habit_type == "yes_no" else None
    if isinstance(value, bool):
        return float(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError("value must be a number")
    if math.isnan(number) or number < 0:
        raise ValidationError("value must be a non-negative number")
    return number


def history_for(habit_id):
    return (
        CheckIn.query.filter_by(habit_id=habit_id)
        .order_by(CheckIn.date.desc(), CheckIn.completed_at.desc())
        .all()
    )


def recompute_habit(habit, today):
    """Derive streak, strength and consistency from history and write them to the habit."""
    history = history_for(habit.id)
    metrics = window_metrics(habit, history, today=today)
    habit.streak = calculate_streak(history, today=today)
    habit.habit_strength = habit_strength(metrics["completed"], metrics["missed"], StrengthFormula.RATIO)
    habit.consistency_percent = metrics["consistency"]
    return habit.streak


def _upsert_stats(user_id, streak):
    stats = (
        UserStats.query.filter_by(user_id=user_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if stats is None:
        stats = UserStats(
            user_id=user_id,
            current_streak=streak,
            longest_streak=streak,
            total_check_ins=1,
        )
        db.session.add(stats)
    else:
        stats.current_streak = streak
        stats.longest_streak = max(stats.longest_streak, streak)
        stats.total_check_ins += 1
    return stats


def _result(check_in, xp_awarded, streak, user, stats, replayed=False):
    return {
        "checkIn": check_in.to_dict(),
        "xpAwarded": xp_awarded,
        "currentStreak": streak,
        "userStats": {
            "totalXp": user.total_xp,
            "level": user.level,
            "currentStreak": stats.current_streak if stats else 0,
            "longestStreak": stats.longest_streak if stats else 0,
            "totalCheckIns": stats.total_check_ins if stats else 0,
        },
        "replayed": replayed,
    }


def _replay(existing, user):
    logger.info(f"Replaying check-in {existing.id} for idempotency key {existing.idempotency_key}")
    stats = UserStats.query.filter_by(user_id=user.id).first()
    return _result(existing, 0, existing.habit.streak, user, stats, replayed=True)


def _lock_user(user_id):
    # Re-read under the lock: the session may already hold a stale copy
    return (
        User.query.filter_by(id=user_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def _find_replay(habit, user_id, idempotency_key):
    existing = CheckIn.query.filter_by(user_id=user_id, idempotency_key=idempotency_key).first()
    if existing is not None and existing.habit_id != habit.id:
        logger.warning(
            f"Idempotency key {idempotency_key} reused for habit {habit.id}, "
            f"already bound to habit {existing.habit_id}"
        )
        raise ValidationError("idempotencyKey was already used for a different habit")
    return existing


def submit_check_in(user_id, habit_id, value=None, note=None, mood=None, effort=None,
                    idempotency_key=None, now=None):
    mood = clamp_rating(mood, "mood")
    effort = clamp_rating(effort, "effort")
    if idempotency_key is not None and len(str(idempotency_key)) > IDEMPOTENCY_KEY_MAX:
        raise ValidationError(f"idempotencyKey must be at most {IDEMPOTENCY_KEY_MAX} characters")
    now = now or utc_now()
    today = now.date()

    with submission_lock(user_id):
        user = _lock_user(user_id)
        if user is None:
            raise NotFoundError("User not found")

        habit = (
            Habit.query.filter_by(id=habit_id, user_id=user_id, is_active=True)
            .with_for_update()
            .first()
        )
        if habit is None:
            logger.warning(f"Check-in rejected: habit {habit_id} not found for user {user_id}")
            raise NotFoundError("Habit not found")

        if idempotency_key:
            existing = _find_replay(habit, user_id, idempotency_key)
            if existing is not None:
                return _replay(existing, user)

        value = normalize_value(habit, value)

        try:
            check_in = CheckIn(
                habit_id=habit.id,
                user_id=user_id,
                date=today,
                completed_at=now,
                value=value,
                note=note,
                mood=mood,
                effort=effort,
                idempotency_key=idempotency_key,
            )
            db.session.add(check_in)
            db.session.flush()

            streak = recompute_habit(habit, today)
            xp_awarded = xp_for_streak(streak)
            stats = _upsert_stats(user_id, streak)
            # Increment in SQL so the database, not this session, holds the running total
            user.total_xp = User.total_xp + xp_awarded
            db.session.flush()
            db.session.refresh(user, ["total_xp"])
            user.level = level_for_xp(user.total_xp)

            db.session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Check-in for habit {habit_id} rolled back: {str(e)}")
            db.session.rollback()
            raise

    logger.info(
        f"Check-in {check_in.id} recorded for habit {habit.id}: streak={streak} "
        f"xp+{xp_awarded} total_xp={user.total_xp} level={user.level}"
    )
    return _result(check_in, xp_awarded, streak, user, stats)
