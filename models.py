from flask_sqlalchemy import SQLAlchemy

from Schedule import utc_now

db = SQLAlchemy()

HABIT_TYPES = ("yes_no", "count", "duration")
SCHEDULE_TYPES = ("daily", "specific_days", "times_per_week")


class User(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password = db.Column(db.String(120), nullable=False)
    total_xp = db.Column(db.Integer, nullable=False, default=0)
    level = db.Column(db.Integer, nullable=False, default=0)
    habits = db.relationship("Habit", backref="user", lazy=True, cascade="all, delete-orphan")
    check_ins = db.relationship("CheckIn", backref="user", lazy=True, cascade="all, delete-orphan")
    stats = db.relationship("UserStats", backref="user", uselist=False, cascade="all, delete-orphan")


class Habit(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    title = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)
    habit_type = db.Column(db.String(20), nullable=False, default="yes_no")
    target_value = db.Column(db.Integer)
    schedule_type = db.Column(db.String(20), nullable=False, default="daily")
    schedule_config = db.Column(db.JSON)  # {"daysOfWeek": [0..6]} or {"timesPerWeek": n}
    color = db.Column(db.String(20), default="#3b82f6")
    icon = db.Column(db.String(50), default="circle")
    # Cache of values derived from check-in history
    streak = db.Column(db.Integer, nullable=False, default=0)
    habit_strength = db.Column(db.Integer, nullable=False, default=0)
    consistency_percent = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)
    check_ins = db.relationship("CheckIn", backref="habit", lazy=True, cascade="all, delete-orphan")

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "habitType": self.habit_type,
            "targetValue": self.target_value,
            "scheduleType": self.schedule_type,
            "scheduleConfig": self.schedule_config or {},
            "color": self.color,
            "icon": self.icon,
            "streak": self.streak,
            "habitStrength": self.habit_strength,
            "consistencyPercent": self.consistency_percent,
            "isActive": self.is_active,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


class CheckIn(db.Model):
    __tablename__ = "check_in"
    __table_args__ = (
        db.UniqueConstraint("user_id", "idempotency_key", name="uq_check_in_idempotency"),
    )

    id = db.Column(db.Integer, primary_key=True)
    habit_id = db.Column(db.Integer, db.ForeignKey("habit.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False, index=True)  # UTC day the check-in counts toward
    completed_at = db.Column(db.DateTime, nullable=False)
    value = db.Column(db.Float)
    note = db.Column(db.Text)
    mood = db.Column(db.Integer)
    effort = db.Column(db.Integer)
    idempotency_key = db.Column(db.String(64))

    def to_dict(self):
        return {
            "id": self.id,
            "habitId": self.habit_id,
            "date": self.date.isoformat(),
            "completedAt": self.completed_at.isoformat(),
            "value": self.value,
            "note": self.note,
            "mood": self.mood,
            "effort": self.effort,
        }


class UserStats(db.Model):
    __tablename__ = "user_stats"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, unique=True)
    current_streak = db.Column(db.Integer, nullable=False, default=0)
    longest_streak = db.Column(db.Integer, nullable=False, default=0)
    total_check_ins = db.Column(db.Integer, nullable=False, default=0)
    restart_marker = db.Column(db.Date)  # last acknowledged restart prompt
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)
