"""
ADVERTIS Strategy Platform
Flask Application Factory.

Usage:
    from advertis import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from advertis.config import config
from advertis.models import db
from advertis.middleware.logging_config import configure_logging
from advertis.middleware.timing import init_request_timing

logger = logging.getLogger(__name__)

# ── SQLite FK enforcement (global engine event) ─────────────────────────
from sqlalchemy import event as _sa_event, engine as _sa_engine  # noqa: E402


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # limits are declared per route
    storage_uri=os.getenv("RATELIMIT_STORAGE_URI", "memory://"),
)


def init_components(app):
    """
    Build the long-lived collaborators once and hang them on ``app.extensions``.

    Static tables are loaded here and injected everywhere else; nothing
    reads the YAML files after startup.
    """
    from advertis.ai.assistants import InterviewFiller, VariableMapper
    from advertis.ai.gateway import LLMGateway
    from advertis.ai.prompt_registry import PromptRegistry
    from advertis.services.static_tables import load_static_tables
    from advertis.services.white_label import WhiteLabelTransposer

    tables = load_static_tables(app.config.get("STATIC_TABLES_DIR"))
    gateway = LLMGateway.from_config(app.config, tables.pricing)
    prompts = PromptRegistry(app.config.get("PROMPTS_DIR"))

    app.extensions["static_tables"] = tables
    app.extensions["white_label"] = WhiteLabelTransposer(tables.white_label)
    app.extensions["ai_gateway"] = gateway
    app.extensions["prompt_registry"] = prompts
    app.extensions["interview_filler"] = InterviewFiller(
        gateway, prompts, tables,
        pillar_context_chars=app.config["AI_PILLAR_CONTEXT_CHARS"],
        timeout=app.config["AI_FILL_TIMEOUT"],
    )
    app.extensions["variable_mapper"] = VariableMapper(
        gateway, prompts, tables,
        min_chars=app.config["FREETEXT_MIN_CHARS"],
        max_chars=app.config["FREETEXT_MAX_CHARS"],
        timeout=app.config["AI_FREETEXT_TIMEOUT"],
    )


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    # instance so ProductionConfig can refuse to start without its env vars
    app.config.from_object(config[config_name]())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    limiter.init_app(app)

    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Request timing middleware ────────────────────────────────────────
    init_request_timing(app)

    # ── Static tables, gateway, assistants ───────────────────────────────
    init_components(app)

    # ── Import all models so create_all sees them ────────────────────────
    from advertis.models import ai as _ai_models              # noqa: F401
    from advertis.models import strategy as _strategy_models  # noqa: F401

    if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite:///") \
            and ":memory:" not in app.config["SQLALCHEMY_DATABASE_URI"]:
        os.makedirs(os.path.dirname(app.config["SQLALCHEMY_DATABASE_URI"][len("sqlite:///"):]),
                    exist_ok=True)

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    with app.app_context():
        db.create_all()
        app.logger.info("db.create_all() completed successfully")

    # ── Blueprints & error envelope ──────────────────────────────────────
    from advertis.blueprints import register_blueprints, register_error_handlers

    register_blueprints(app)
    register_error_handlers(app)

    return app
