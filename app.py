import os
import logging
from flask import Flask, jsonify
from flask_cors import CORS
from flask_migrate import Migrate

from config import Config
from models import db
from errors import HabitTrackerError

logger = logging.getLogger(__name__)

migrate = Migrate()


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Configure logging
    logging.basicConfig(level=app.config["LOG_LEVEL"])

    CORS(app, resources={r"/api/*": {
        "origins": app.config["FRONTEND_URL"],
        "methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        "allow_headers": ["Content-Type", "Authorization", "Idempotency-Key"]
    }})
    db.init_app(app)
    migrate.init_app(app, db)

    from Authentication import auth_bp
    from Habit import habits_bp
    from CheckIn import check_ins_bp
    from Analysis import stats_bp
    app.register_blueprint(auth_bp)
    app.register_blueprint(habits_bp)
    app.register_blueprint(check_ins_bp)
    app.register_blueprint(stats_bp)

    @app.errorhandler(HabitTrackerError)
    def handle_domain_error(e):
        logger.warning(f"{type(e).__name__}: {e.message}")
        return jsonify({"message": e.message}), e.status_code

    # Create database tables
    with app.app_context():
        db.create_all()

    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=int(os.getenv("PORT", 5000)))
