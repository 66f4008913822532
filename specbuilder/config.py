"""
Environment configuration, selected by name in ``create_app``.

    development   SQLite file under instance/, auth off, debug on
    testing       in-memory SQLite, auth and rate limits off, short debounce
    production    DATABASE_URL + SECRET_KEY required, pooled Postgres engine

Every setting can be overridden from the environment.
"""

import os
import secrets

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

_SQLITE_DEV = f"sqlite:///{os.path.join(basedir, 'instance', 'spec_builder_dev.db')}"
_SQLITE_TEST = "sqlite:///:memory:"

# Per-process key; sessions and tokens do not survive a restart in development
_DEV_SECRET = secrets.token_hex(32)


def _database_url(default=None):
    # SQLAlchemy 2.x only accepts the postgresql:// scheme
    raw = os.getenv("DATABASE_URL", "")
    return raw.replace("postgres://", "postgresql://", 1) if raw else default


def _flag(name, default="false"):
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", _DEV_SECRET)
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
    DEBUG = False
    TESTING = False

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}

    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    RATELIMIT_ENABLED = True
    RATELIMIT_STORAGE_URI = os.getenv("REDIS_URL", "memory://")
    CHAT_RATE_LIMIT = os.getenv("CHAT_RATE_LIMIT", "60/minute")

    API_AUTH_ENABLED = _flag("API_AUTH_ENABLED", "true")
    DEV_USER_ID = os.getenv("DEV_USER_ID", "dev-user")

    AUTOSAVE_DEBOUNCE_SECONDS = float(os.getenv("AUTOSAVE_DEBOUNCE_SECONDS", "1.0"))
    ENHANCEMENT_DEEP_COPY = _flag("ENHANCEMENT_DEEP_COPY", "true")
    RECENT_PROJECT_DAYS = int(os.getenv("RECENT_PROJECT_DAYS", "7"))


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _database_url(_SQLITE_DEV)
    API_AUTH_ENABLED = _flag("API_AUTH_ENABLED", "false")


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", _SQLITE_TEST)
    API_AUTH_ENABLED = False
    JWT_SECRET_KEY = "test-jwt-secret"
    RATELIMIT_ENABLED = False
    AUTOSAVE_DEBOUNCE_SECONDS = 0.05


class ProductionConfig(Config):
    SQLALCHEMY_DATABASE_URI = _database_url()
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")

    def __init__(self):
        if not self.SQLALCHEMY_DATABASE_URI:
            raise RuntimeError("DATABASE_URL environment variable is required in production")
        if not os.getenv("SECRET_KEY"):
            raise RuntimeError("SECRET_KEY environment variable must be set in production")
        if self.SQLALCHEMY_DATABASE_URI.startswith("postgresql"):
            self.SQLALCHEMY_ENGINE_OPTIONS = {
                "pool_pre_ping": True,
                "pool_size": 5,
                "max_overflow": 10,
                "pool_recycle": 300,
                "connect_args": {"options": "-c statement_timeout=30000"},
            }


config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
