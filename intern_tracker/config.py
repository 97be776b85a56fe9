"""
Intern Training Tracker settings, one class per APP_ENV value.

    app.config.from_object(config[os.getenv("APP_ENV", "development")]())

Environment variables: DATABASE_URL, TEST_DATABASE_URL, SECRET_KEY,
REDIS_URL, REFERENCE_CACHE_TTL, LOG_WINDOW_DAYS, LOG_LEVEL, LOG_FORMAT,
RATELIMIT_STORAGE_URI, CORS_ORIGINS.
"""

import os
import secrets

PROJECT_ROOT = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
LOCAL_SQLITE_URL = "sqlite:///" + os.path.join(PROJECT_ROOT, "instance", "intern_tracker_dev.db")
MEMORY_SQLITE_URL = "sqlite:///:memory:"


def _int_env(name, default):
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _database_url(default=None):
    url = os.getenv("DATABASE_URL")
    if not url:
        return default
    # SQLAlchemy 2 only accepts the postgresql:// scheme
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    return url


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY") or secrets.token_hex(32)
    DEBUG = False
    TESTING = False

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True, "pool_recycle": 300}

    # rotations / requirements / procedures
    REDIS_URL = os.getenv("REDIS_URL", "memory://")
    REFERENCE_CACHE_TTL = _int_env("REFERENCE_CACHE_TTL", 300)
    CACHE_NAMESPACE = "intern_tracker:"

    # logs older than this many days do not count towards progress; 0 = no limit
    LOG_WINDOW_DAYS = _int_env("LOG_WINDOW_DAYS", 730)

    LOG_LEVEL = os.getenv("LOG_LEVEL")
    LOG_FORMAT = os.getenv("LOG_FORMAT")

    RATELIMIT_ENABLED = True
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")

    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    MAX_CONTENT_LENGTH = 1024 * 1024


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _database_url(LOCAL_SQLITE_URL)


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", MEMORY_SQLITE_URL)
    # pool sizing options do not apply to the in-memory SQLite pool
    SQLALCHEMY_ENGINE_OPTIONS = {}
    REDIS_URL = "memory://"
    RATELIMIT_ENABLED = False


class ProductionConfig(Config):
    SQLALCHEMY_DATABASE_URI = _database_url()
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_timeout": 20,
    }

    def __init__(self):
        missing = [
            name for name, value in (
                ("DATABASE_URL", self.SQLALCHEMY_DATABASE_URI),
                ("SECRET_KEY", os.getenv("SECRET_KEY")),
            ) if not value
        ]
        if missing:
            raise RuntimeError(f"Production requires environment variables: {', '.join(missing)}")


config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
