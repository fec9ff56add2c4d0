import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Config:
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///habits.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
    JWT_EXPIRATION_HOURS = int(os.getenv("JWT_EXPIRATION_HOURS", 24))
    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:8081")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Rolling windows, in days
    REVIEW_WINDOW_DAYS = 7
    RESTART_THRESHOLD_DAYS = 3


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    JWT_SECRET_KEY = "test-secret"
    LOG_LEVEL = "DEBUG"
