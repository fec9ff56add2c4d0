from flask import Blueprint, current_app, jsonify
from datetime import timedelta
from collections import Counter
from sqlalchemy.exc import SQLAlchemyError
import logging

from models import db, Habit, UserStats
from Authentication import token_required
from Habit import get_owned_habit
from Schedule import WEEKDAY_NAMES, utc_today, weekday_index
from Streak import calculate_streak, longest_run
from Consistency import StrengthFormula, habit_strength, window_metrics, WINDOW_DAYS
from Ingestion import history_for
from Review import weekly_review
from Restart import restart_status, acknowledge_restart

logger = logging.getLogger(__name__)

stats_bp = Blueprint("stats", __name__, url_prefix="/api/stats")


def best_weekday(check_ins):
    """Most frequent weekday among check-in days; ties go to the lowest index."""
    counts = Counter(weekday_index(day) for day in {c.date for c in check_ins})
    if not counts:
        return None
    index = min(counts, key=lambda i: (-counts[i], i))
    return {"index": index, "name": WEEKDAY_NAMES[index]}


def heatmap(check_ins, today, days=WINDOW_DAYS):
    checked = {c.date for c in check_ins}
    start = today - timedelta(days=days - 1)
    return {
        (start + timedelta(days=i)).isoformat(): int(start + timedelta(days=i) in checked)
        for i in range(days)
    }


@stats_bp.route("/overview", methods=["GET"])
@token_required
def get_overview(user):
    try:
        today = utc_today()
        stats = UserStats.query.filter_by(user_id=user.id).first()
        habits = Habit.query.filter_by(user_id=user.id, is_active=True).order_by(Habit.id).all()
        habit_data = [{
            "id": habit.id,
            "title": habit.title,
            "streak": calculate_streak(history_for(habit.id), today=today),
        } for habit in habits]
        logger.debug(f"Overview fetched for user {user.username}: {len(habit_data)} habits")
        return jsonify({
            "totalXp": user.total_xp,
            "level": user.level,
            "currentStreak": stats.current_streak if stats else 0,
            "longestStreak": stats.longest_streak if stats else 0,
            "totalCheckIns": stats.total_check_ins if stats else 0,
            "habits": habit_data,
        }), 200
    except SQLAlchemyError as e:
        logger.error(f"Database error fetching overview: {str(e)}")
        return jsonify({"message": "Failed to fetch overview"}), 500


@stats_bp.route("/habit/<int:habit_id>", methods=["GET"])
@token_required
def get_habit_stats(user, habit_id):
    habit = get_owned_habit(user, habit_id, include_inactive=True)
    try:
        today = utc_today()
        history = history_for(habit.id)
        metrics = window_metrics(habit, history, today=today)
        recent = [c for c in history if metrics["start"] <= c.date <= metrics["end"]]
        return jsonify({
            "habitId": habit.id,
            "title": habit.title,
            "streak": calculate_streak(history, today=today),
            "longestStreak": longest_run(history),
            "habitStrength": habit_strength(metrics["completed"], metrics["missed"], StrengthFormula.ADDITIVE),
            "consistencyPercent": metrics["consistency"],
            "completed": metrics["completed"],
            "expected": metrics["expected"],
            "missed": metrics["missed"],
            "bestWeekday": best_weekday(history),
            "checkInsLast30Days": len(recent),
            "totalCheckIns": len(history),
            "heatmap": heatmap(history, today),
        }), 200
    except SQLAlchemyError as e:
        logger.error(f"Database error fetching stats for habit {habit_id}: {str(e)}")
        return jsonify({"message": "Failed to fetch habit stats"}), 500


@stats_bp.route("/weekly-review", methods=["GET"])
@token_required
def get_weekly_review(user):
    try:
        review = weekly_review(user.id, today=utc_today(), days=current_app.config["REVIEW_WINDOW_DAYS"])
    except SQLAlchemyError as e:
        logger.error(f"Database error building weekly review: {str(e)}")
        return jsonify({"message": "Failed to build weekly review"}), 500
    return jsonify(review), 200


@stats_bp.route("/restart", methods=["GET"])
@token_required
def get_restart_status(user):
    status = restart_status(user.id, today=utc_today(), threshold=current_app.config["RESTART_THRESHOLD_DAYS"])
    return jsonify(status), 200


@stats_bp.route("/restart/acknowledge", methods=["POST"])
@token_required
def post_restart_acknowledge(user):
    try:
        marker = acknowledge_restart(user.id, today=utc_today())
    except SQLAlchemyError as e:
        logger.error(f"Database error acknowledging restart: {str(e)}")
        db.session.rollback()
        return jsonify({"message": "Failed to acknowledge restart"}), 500
    return jsonify({"message": "Restart acknowledged", "lastCheckInDate": marker.isoformat()}), 200
