import os
from datetime import timedelta
from dotenv import load_dotenv


load_dotenv()

class Config:
    SECRET_KEY = os.getenv("JWT_SECRET_KEY", "fallback-secret")  # used for both Flask and JWT
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "fallback-jwt")
    SQLALCHEMY_DATABASE_URI = os.getenv("SQLALCHEMY_DATABASE_URI", "sqlite:///rollcall.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    REDIS_URL = os.getenv("REDIS_URL")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000")
    AUDIT_LOG_FILE = os.getenv("AUDIT_LOG_FILE", os.path.join("logs", "audit.log"))
    FLASK_ENV = os.getenv("FLASK_ENV", "development")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=1)         # Auto-expire access token after 1 hour
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=7)
    JWT_TOKEN_LOCATION = ["cookies"]
    JWT_COOKIE_SECURE = os.getenv("JWT_COOKIE_SECURE", "true").lower() == "true"
    JWT_COOKIE_SAMESITE = "Lax"
    JWT_COOKIE_CSRF_PROTECT = False

    # Attendance rules
    EDIT_WINDOW_HOURS = int(os.getenv("EDIT_WINDOW_HOURS", 24))
    DEFAULT_LOW_ATTENDANCE_THRESHOLD = 75
    PASSWORD_RESET_EXPIRES_HOURS = int(os.getenv("PASSWORD_RESET_EXPIRES_HOURS", 1))


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    JWT_SECRET_KEY = "test-jwt-secret-key-with-enough-length"
    JWT_COOKIE_SECURE = False
    RATELIMIT_ENABLED = False
    AUDIT_LOG_FILE = os.path.join("logs", "audit-test.log")
