"""
ADVERTIS Strategy Platform
Configuration classes for Flask App Factory.

Usage:
    config_name = os.getenv("APP_ENV", "development")
    app.config.from_object(config[config_name]())
"""

import os
import secrets

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

# Default SQLite path for local dev when PostgreSQL is not running
_SQLITE_DEV = f"sqlite:///{os.path.join(basedir, 'instance', 'advertis_dev.db')}"
_SQLITE_TEST = "sqlite:///:memory:"

# Generate a random key for development; production MUST use a stable env var
_DEV_SECRET = secrets.token_hex(32)


def _csv(value: str) -> list[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


class Config:
    """Base configuration shared across all environments."""

    SECRET_KEY = os.getenv("SECRET_KEY", _DEV_SECRET)
    DEBUG = False
    TESTING = False

    # SQLAlchemy
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,   # recycle connections every 5 min
    }

    # Logging (see middleware/logging_config.py)
    LOG_LEVEL = os.getenv("LOG_LEVEL")
    LOG_FORMAT = os.getenv("LOG_FORMAT")
    SLOW_REQUEST_MS = int(os.getenv("SLOW_REQUEST_MS", "1000"))

    # CORS
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    # Rate limiting (flask-limiter)
    RATELIMIT_ENABLED = os.getenv("RATELIMIT_ENABLED", "true").lower() == "true"
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")

    # Session tokens (HS256). Falls back to SECRET_KEY when unset.
    SESSION_TOKEN_SECRET = os.getenv("SESSION_TOKEN_SECRET") or SECRET_KEY
    SESSION_TOKEN_TTL = int(os.getenv("SESSION_TOKEN_TTL", "3600"))

    # "passthrough": unknown roles are returned unchanged (and then match no
    # capability). "deny": unknown roles are rejected at session resolution.
    UNKNOWN_ROLE_POLICY = os.getenv("UNKNOWN_ROLE_POLICY", "passthrough")

    # Generation provider
    AI_PROVIDER = os.getenv("AI_PROVIDER", "anthropic")
    AI_DEFAULT_MODEL = os.getenv("AI_DEFAULT_MODEL", "claude-sonnet-4-20250514")
    AI_MAX_OUTPUT_TOKENS = int(os.getenv("AI_MAX_OUTPUT_TOKENS", "4000"))
    AI_FILL_TIMEOUT = int(os.getenv("AI_FILL_TIMEOUT", "90"))
    AI_FREETEXT_TIMEOUT = int(os.getenv("AI_FREETEXT_TIMEOUT", "120"))
    AI_PILLAR_CONTEXT_CHARS = int(os.getenv("AI_PILLAR_CONTEXT_CHARS", "3000"))
    AI_TRANSIENT_MARKERS = _csv(
        os.getenv("AI_TRANSIENT_MARKERS", "overloaded,try again,surchargée,réessayer")
    )

    # Free-text mapping bounds (characters, after trimming)
    FREETEXT_MIN_CHARS = int(os.getenv("FREETEXT_MIN_CHARS", "100"))
    FREETEXT_MAX_CHARS = int(os.getenv("FREETEXT_MAX_CHARS", "50000"))

    # Upload extracted-text cap
    UPLOAD_TEXT_MAX_CHARS = int(os.getenv("UPLOAD_TEXT_MAX_CHARS", "50000"))

    # Rate limit applied to AI endpoints
    AI_RATE_LIMIT = os.getenv("AI_RATE_LIMIT", "30 per minute")

    # Overrides for the packaged YAML tables and prompt templates
    STATIC_TABLES_DIR = os.getenv("STATIC_TABLES_DIR")
    PROMPTS_DIR = os.getenv("PROMPTS_DIR")


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG = True
    _raw_db_url = os.getenv("DATABASE_URL", "")
    SQLALCHEMY_DATABASE_URI = (
        _raw_db_url.replace("postgres://", "postgresql://", 1) if _raw_db_url else _SQLITE_DEV
    )


class TestingConfig(Config):
    """Testing environment configuration."""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", _SQLITE_TEST)
    SQLALCHEMY_ENGINE_OPTIONS = {}
    RATELIMIT_ENABLED = False
    SESSION_TOKEN_SECRET = "test-session-secret"
    AI_PROVIDER = "local"


class ProductionConfig(Config):
    """Production environment configuration."""

    DEBUG = False
    # Railway/Heroku use postgres:// but SQLAlchemy 2.0 requires postgresql://
    _raw_db_url = os.getenv("DATABASE_URL", "")
    SQLALCHEMY_DATABASE_URI = _raw_db_url.replace("postgres://", "postgresql://", 1) if _raw_db_url else None
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")  # Must be set explicitly in production

    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 300,
        "pool_timeout": 20,
    }

    def __init__(self):
        if not self.SQLALCHEMY_DATABASE_URI:
            raise RuntimeError("DATABASE_URL environment variable is required in production")
        if not os.getenv("SECRET_KEY"):
            raise RuntimeError("SECRET_KEY environment variable must be set in production")


# Configuration mapping: environment name -> config class
config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
