import logging
import sys
from flask_migrate import upgrade
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError

from app import create_app
from config import Config

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def check_connection(database_url):
    try:
        engine = create_engine(database_url)
        with engine.connect():
            logger.info("Database connection successful")
        return True
    except OperationalError as e:
        logger.error(f"Database connection failed: {e}")
        return False


def run_migrations():
    if not check_connection(Config.SQLALCHEMY_DATABASE_URI):
        return 1
    app = create_app(Config)
    with app.app_context():
        try:
            upgrade()  # Apply migrations
        except Exception as e:
            logger.error(f"Failed to apply migrations: {e}")
            return 1
    logger.info("Database migrations applied successfully")
    return 0


if __name__ == "__main__":
    sys.exit(run_migrations())
