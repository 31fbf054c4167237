"""Flask application configuration."""

import os
import tempfile
from pathlib import Path

DATA_DIR = Path(__file__).parent.parent / "data"


class Config:
    """Base configuration."""

    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-key-change-in-production")
    APP_VERSION = os.environ.get("APP_VERSION", "1.0.0")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", f"sqlite:///{DATA_DIR / 'refuels.db'}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Read by setup_logging in create_app
    LOG_LEVEL = os.environ.get("LOG_LEVEL")
    LOG_DIR = os.environ.get("LOG_DIR")
    LOG_JSON_FORMAT = os.environ.get("LOG_JSON_FORMAT", "True").lower() == "true"

    # JSON API behind the gateway, no cookies, so no CSRF tokens on forms
    WTF_CSRF_ENABLED = False

    # Refuel payloads are a few hundred bytes
    MAX_CONTENT_LENGTH = 64 * 1024

    # Flask-Limiter backend; point REDIS_URL at Redis when running several workers
    RATELIMIT_STORAGE_URI = os.environ.get("REDIS_URL", "memory://")

    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "http://localhost:3000").split(",")


class DevelopmentConfig(Config):
    """Development configuration."""

    DEBUG = True


class ProductionConfig(Config):
    """Production configuration."""

    DEBUG = False


class TestingConfig(Config):
    """Testing configuration."""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    RATELIMIT_ENABLED = False
    LOG_DIR = str(Path(tempfile.gettempdir()) / "refuel_log_tests")
    LOG_JSON_FORMAT = False


config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}
