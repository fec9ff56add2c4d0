import logging

from models import db, CheckIn, UserStats
from Schedule import utc_today

logger = logging.getLogger(__name__)

RESTART_THRESHOLD_DAYS = 3


def should_prompt_restart(last_check_in_date, today, threshold=RESTART_THRESHOLD_DAYS):
    if last_check_in_date is None or last_check_in_date == today:
        return False
    return (today - last_check_in_date).days >= threshold


def last_activity_date(user_id):
    """Later of the user's latest check-in day and the acknowledged restart marker."""
    latest = (
        CheckIn.query.with_entities(CheckIn.date)
        .filter_by(user_id=user_id)
        .order_by(CheckIn.date.desc())
        .first()
    )
    stats = UserStats.query.filter_by(user_id=user_id).first()
    candidates = [d for d in (latest[0] if latest else None, stats.restart_marker if stats else None) if d]
    return max(candidates) if candidates else None


def restart_status(user_id, today=None, threshold=RESTART_THRESHOLD_DAYS):
    today = today or utc_today()
    last = last_activity_date(user_id)
    return {
        "shouldPrompt": should_prompt_restart(last, today, threshold),
        "lastCheckInDate": last.isoformat() if last else None,
        "daysSince": (today - last).days if last else None,
    }


def acknowledge_restart(user_id, today=None):
    today = today or utc_today()
    stats = UserStats.query.filter_by(user_id=user_id).first()
    if stats is None:
        stats = UserStats(user_id=user_id)
        db.session.add(stats)
    stats.restart_marker = today
    db.session.commit()
    logger.info(f"Restart prompt acknowledged by user {user_id} on {today}")
    return today
