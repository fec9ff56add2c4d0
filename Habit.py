import logging
from flask import Blueprint, request, jsonify
from sqlalchemy.exc import SQLAlchemyError

from models import db, Habit, HABIT_TYPES, SCHEDULE_TYPES
from errors import NotFoundError, ValidationError
from Authentication import token_required

logger = logging.getLogger(__name__)

habits_bp = Blueprint("habits", __name__, url_prefix="/api/habits")

EDITABLE_FIELDS = {
    "title": "title",
    "description": "description",
    "targetValue": "target_value",
    "color": "color",
    "icon": "icon",
}


def get_owned_habit(user, habit_id, include_inactive=False):
    query = Habit.query.filter_by(id=habit_id, user_id=user.id)
    if not include_inactive:
        query = query.filter_by(is_active=True)
    habit = query.first()
    if habit is None:
        logger.warning(f"Habit {habit_id} not found for user {user.id}")
        raise NotFoundError("Habit not found")
    return habit


def validate_schedule(schedule_type, schedule_config):
    if schedule_type not in SCHEDULE_TYPES:
        raise ValidationError(f"scheduleType must be one of {', '.join(SCHEDULE_TYPES)}")
    schedule_config = schedule_config or {}
    if not isinstance(schedule_config, dict):
        raise ValidationError("scheduleConfig must be an object")

    if schedule_type == "specific_days":
        days = schedule_config.get("daysOfWeek")
        if not isinstance(days, list) or not days:
            raise ValidationError("daysOfWeek is required for specific_days schedules")
        if any(isinstance(d, bool) or not isinstance(d, int) or not 0 <= d <= 6 for d in days):
            raise ValidationError("daysOfWeek entries must be integers 0-6 (0=Sunday)")
        return {"daysOfWeek": sorted(set(days))}
    if schedule_type == "times_per_week":
        times = schedule_config.get("timesPerWeek")
        if isinstance(times, bool) or not isinstance(times, int) or not 1 <= times <= 7:
            raise ValidationError("timesPerWeek must be an integer 1-7")
        return {"timesPerWeek": times}
    return {}


def validate_target_value(target_value):
    if target_value is None:
        return None
    if isinstance(target_value, bool) or not isinstance(target_value, int) or target_value < 0:
        raise ValidationError("targetValue must be a non-negative integer")
    return target_value


def validate_label(value, field, max_length):
    if not isinstance(value, str) or not value.strip() or len(value) > max_length:
        raise ValidationError(f"{field} must be a non-empty string of at most {max_length} characters")
    return value.strip()


@habits_bp.route("", methods=["GET"])
@token_required
def list_habits(user):
    habits = Habit.query.filter_by(user_id=user.id, is_active=True).order_by(Habit.created_at.desc()).all()
    logger.debug(f"Fetched {len(habits)} habits for user {user.username}")
    return jsonify([habit.to_dict() for habit in habits]), 200


@habits_bp.route("", methods=["POST"])
@token_required
def create_habit(user):
    data = request.get_json(silent=True) or {}
    logger.debug(f"Create habit payload: {data}")
    title = str(data.get("title") or "").strip()
    if not title:
        raise ValidationError("Title required")
    habit_type = data.get("habitType", "yes_no")
    if habit_type not in HABIT_TYPES:
        raise ValidationError(f"habitType must be one of {', '.join(HABIT_TYPES)}")
    schedule_type = data.get("scheduleType", "daily")
    schedule_config = validate_schedule(schedule_type, data.get("scheduleConfig"))
    target_value = validate_target_value(data.get("targetValue"))
    color = validate_label(data.get("color", "#3b82f6"), "color", 20)
    icon = validate_label(data.get("icon", "circle"), "icon", 50)
    try:
        new_habit = Habit(
            user_id=user.id,
            title=title,
            description=data.get("description"),
            habit_type=habit_type,
            target_value=target_value,
            schedule_type=schedule_type,
            schedule_config=schedule_config,
            color=color,
            icon=icon,
        )
        db.session.add(new_habit)
        db.session.commit()
    except SQLAlchemyError as e:
        logger.error(f"Database error creating habit: {str(e)}")
        db.session.rollback()
        return jsonify({"message": "Failed to create habit"}), 500
    logger.info(f"Habit created: {title} for user {user.username}")
    return jsonify(new_habit.to_dict()), 201


@habits_bp.route("/<int:habit_id>", methods=["GET"])
@token_required
def get_habit(user, habit_id):
    habit = get_owned_habit(user, habit_id)
    return jsonify(habit.to_dict()), 200


@habits_bp.route("/<int:habit_id>", methods=["PUT"])
@token_required
def update_habit(user, habit_id):
    habit = get_owned_habit(user, habit_id)
    data = request.get_json(silent=True) or {}
    logger.debug(f"Update habit {habit_id} payload: {data}")
    changes = {attr: data[key] for key, attr in EDITABLE_FIELDS.items() if key in data}
    if "title" in changes:
        changes["title"] = str(changes["title"] or "").strip()
        if not changes["title"]:
            raise ValidationError("Title cannot be empty")
    if "target_value" in changes:
        changes["target_value"] = validate_target_value(changes["target_value"])
    if "color" in changes:
        changes["color"] = validate_label(changes["color"], "color", 20)
    if "icon" in changes:
        changes["icon"] = validate_label(changes["icon"], "icon", 50)
    if "scheduleType" in data or "scheduleConfig" in data:
        schedule_type = data.get("scheduleType", habit.schedule_type)
        schedule_config = data.get("scheduleConfig", habit.schedule_config)
        changes["schedule_config"] = validate_schedule(schedule_type, schedule_config)
        changes["schedule_type"] = schedule_type
    try:
        for attr, value in changes.items():
            setattr(habit, attr, value)
        db.session.commit()
    except SQLAlchemyError as e:
        logger.error(f"Database error updating habit: {str(e)}")
        db.session.rollback()
        return jsonify({"message": "Failed to update habit"}), 500
    logger.info(f"Habit {habit_id} updated for user {user.username}")
    return jsonify(habit.to_dict()), 200


@habits_bp.route("/<int:habit_id>", methods=["DELETE"])
@token_required
def delete_habit(user, habit_id):
    habit = get_owned_habit(user, habit_id)
    try:
        # Soft delete keeps historical check-ins valid
        habit.is_active = False
        db.session.commit()
    except SQLAlchemyError as e:
        logger.error(f"Error deleting habit {habit_id}: {str(e)}")
        db.session.rollback()
        return jsonify({"message": "Failed to delete habit"}), 500
    logger.info(f"Habit {habit_id} deactivated by user {user.id}")
    return jsonify({"message": "Habit deleted"}), 200
