import logging
from datetime import date, datetime, time, timedelta
from flask import Blueprint, request, jsonify
from sqlalchemy.exc import SQLAlchemyError

from models import db, CheckIn
from errors import NotFoundError, ValidationError
from Authentication import token_required
from Habit import get_owned_habit
from Ingestion import submit_check_in, clamp_rating
from Schedule import utc_now

logger = logging.getLogger(__name__)

check_ins_bp = Blueprint("check_ins", __name__, url_prefix="/api/check-ins")


def _parse_date(raw, name):
    if raw is None:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO date (YYYY-MM-DD)")


@check_ins_bp.route("", methods=["POST"])
@token_required
def create_check_in(user):
    data = request.get_json(silent=True) or {}
    logger.debug(f"Check-in payload: {data}")
    habit_id = data.get("habitId")
    if habit_id is None:
        raise ValidationError("habitId required")
    try:
        habit_id = int(habit_id)
    except (TypeError, ValueError):
        raise ValidationError("habitId must be an integer")
    try:
        result = submit_check_in(
            user.id,
            habit_id,
            value=data.get("value"),
            note=data.get("note"),
            mood=data.get("mood"),
            effort=data.get("effort"),
            idempotency_key=data.get("idempotencyKey") or request.headers.get("Idempotency-Key"),
        )
    except SQLAlchemyError:
        return jsonify({"message": "Failed to record check-in"}), 500
    status = 200 if result.pop("replayed") else 201
    return jsonify(result), status


@check_ins_bp.route("/today", methods=["GET"])
@token_required
def today_check_ins(user):
    start = datetime.combine(utc_now().date(), time.min)
    end = start + timedelta(days=1)
    check_ins = (
        CheckIn.query.filter(
            CheckIn.user_id == user.id,
            CheckIn.completed_at >= start,
            CheckIn.completed_at < end,
        )
        .order_by(CheckIn.completed_at.desc())
        .all()
    )
    logger.debug(f"Fetched {len(check_ins)} check-ins today for user {user.username}")
    return jsonify([c.to_dict() for c in check_ins]), 200


@check_ins_bp.route("/habit/<int:habit_id>", methods=["GET"])
@token_required
def habit_check_ins(user, habit_id):
    habit = get_owned_habit(user, habit_id, include_inactive=True)
    start_date = _parse_date(request.args.get("startDate"), "startDate")
    end_date = _parse_date(request.args.get("endDate"), "endDate")
    query = CheckIn.query.filter(CheckIn.habit_id == habit.id)
    if start_date:
        query = query.filter(CheckIn.date >= start_date)
    if end_date:
        query = query.filter(CheckIn.date <= end_date)
    check_ins = query.order_by(CheckIn.date.desc(), CheckIn.completed_at.desc()).all()
    logger.debug(f"Fetched history for habit {habit_id}: {len(check_ins)} check-ins")
    return jsonify([c.to_dict() for c in check_ins]), 200


@check_ins_bp.route("/<int:check_in_id>", methods=["PUT"])
@token_required
def update_check_in(user, check_in_id):
    check_in = CheckIn.query.filter_by(id=check_in_id, user_id=user.id).first()
    if check_in is None:
        raise NotFoundError("Check-in not found")
    data = request.get_json(silent=True) or {}
    # Only annotations are editable; derived streak and XP are untouched
    mood = clamp_rating(data.get("mood"), "mood")
    effort = clamp_rating(data.get("effort"), "effort")
    try:
        if "note" in data:
            check_in.note = data["note"]
        if mood is not None:
            check_in.mood = mood
        if effort is not None:
            check_in.effort = effort
        db.session.commit()
    except SQLAlchemyError as e:
        logger.error(f"Database error updating check-in {check_in_id}: {str(e)}")
        db.session.rollback()
        return jsonify({"message": "Failed to update check-in"}), 500
    logger.info(f"Check-in {check_in_id} updated by user {user.username}")
    return jsonify(check_in.to_dict()), 200
