"""
FieldProgress configuration, selected by APP_ENV.

    app.config.from_object(config[os.getenv("APP_ENV", "development")])

Analytics and import behaviour is tuned through plain env vars:

    PLANNED_PROGRESS_PCT        overall-KPI planned percentage (75)
    PLANNED_BASELINE_PCT        per-system planned baseline (75)
    PROGRESS_SERIES_WEEKS       S-curve length (12)
    IMPORT_REPORT_SHORT_ROWS    report short CSV rows as errors instead of skipping
    IMPORT_REJECT_MIXED_PROJECTS reject batches whose valid rows span several projects
"""

import os
import secrets

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

_SQLITE_DEV = f"sqlite:///{os.path.join(basedir, 'instance', 'fieldprogress_dev.db')}"


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


def _database_url(fallback=None):
    # Heroku-style postgres:// is rejected by SQLAlchemy 2.x
    raw = os.getenv("DATABASE_URL", "")
    return raw.replace("postgres://", "postgresql://", 1) if raw else fallback


def _pool_options(**extra) -> dict:
    options = {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 300,
        "pool_timeout": 20,
    }
    options.update(extra)
    return options


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", secrets.token_hex(32))
    DEBUG = False
    TESTING = False

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = _pool_options()

    # Flask-Limiter storage
    REDIS_URL = os.getenv("REDIS_URL", "memory://")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    PLANNED_PROGRESS_PCT = float(os.getenv("PLANNED_PROGRESS_PCT", "75"))
    PLANNED_BASELINE_PCT = float(os.getenv("PLANNED_BASELINE_PCT", "75"))
    PROGRESS_SERIES_WEEKS = int(os.getenv("PROGRESS_SERIES_WEEKS", "12"))

    IMPORT_REPORT_SHORT_ROWS = _env_flag("IMPORT_REPORT_SHORT_ROWS")
    IMPORT_REJECT_MIXED_PROJECTS = _env_flag("IMPORT_REJECT_MIXED_PROJECTS")


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _database_url(_SQLITE_DEV)


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    # In-memory SQLite runs on a static pool; queue sizing does not apply
    SQLALCHEMY_ENGINE_OPTIONS = {}
    RATELIMIT_ENABLED = False
    IMPORT_REPORT_SHORT_ROWS = False
    IMPORT_REJECT_MIXED_PROJECTS = False


class ProductionConfig(Config):
    SQLALCHEMY_DATABASE_URI = _database_url()
    # Explicit origin list required
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")
    SQLALCHEMY_ENGINE_OPTIONS = _pool_options(
        connect_args={"options": "-c statement_timeout=30000"},
    )

    def __init__(self):
        if not self.SQLALCHEMY_DATABASE_URI:
            raise RuntimeError("DATABASE_URL environment variable is required in production")
        if not os.getenv("SECRET_KEY"):
            raise RuntimeError("SECRET_KEY environment variable must be set in production")


config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
