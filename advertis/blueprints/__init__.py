"""
ADVERTIS Strategy Platform
Blueprint registry & error envelope.

Every AdvertisError raised below a view is turned into the standard
``{error, code, details?, retryable?}`` envelope here, once.
"""

import logging

from flask import current_app, g, request
from werkzeug.exceptions import HTTPException

from advertis.core.exceptions import (
    AdvertisError,
    AIResponseParseError,
    ConflictError,
    InvalidPhaseError,
    NotFoundError,
    ValidationError,
)
from advertis.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def get_component(name: str):
    """Fetch a component built by the app factory (gateway, transposer, ...)."""
    return current_app.extensions[name]


def current_role():
    return getattr(g, "role", None)


def json_body() -> dict:
    """Request JSON as a dict; anything else is a validation error."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def register_blueprints(app):
    from advertis.blueprints.ai_bp import ai_bp
    from advertis.blueprints.catalogue_bp import catalogue_bp
    from advertis.blueprints.health_bp import health_bp
    from advertis.blueprints.market_study_bp import market_study_bp
    from advertis.blueprints.session_bp import session_bp
    from advertis.blueprints.strategy_bp import strategy_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(session_bp)
    app.register_blueprint(catalogue_bp)
    app.register_blueprint(strategy_bp)
    app.register_blueprint(market_study_bp)
    app.register_blueprint(ai_bp)


def register_error_handlers(app):
    """Map the exception taxonomy and stray HTTP errors to JSON responses."""

    @app.errorhandler(AdvertisError)
    def handle_advertis_error(e):
        extra = {"error_code": e.code, "strategy_id": getattr(e, "resource_id", None)}
        retryable = True if e.retryable else None

        if isinstance(e, NotFoundError):
            logger.info("Not found: %s", e, extra=extra)
            return api_error(E.NOT_FOUND, e.public_message)
        if isinstance(e, InvalidPhaseError):
            return api_error(
                E.INVALID_PHASE, str(e),
                details={"required_phase": e.required_phase, "actual_phase": e.actual_phase},
            )
        if isinstance(e, ValidationError):
            return api_error(E.VALIDATION, str(e), details=e.details or None)
        if isinstance(e, ConflictError):
            return api_error(
                E.CONFLICT_STALE, str(e),
                details={"expected_version": e.expected_version, "actual_version": e.actual_version},
            )
        if isinstance(e, AIResponseParseError):
            # raw snippet already logged at parse time; never echoed to the client
            logger.error("AI response unparseable purpose=%s", e.purpose, extra=extra)
            return api_error(E.AI_PARSE, str(e), retryable=False)

        if e.http_status >= 500:
            logger.error("%s: %s", type(e).__name__, e, extra=extra)
            retryable = e.retryable
        else:
            logger.info("%s: %s", type(e).__name__, e, extra=extra)
        return api_error(e.code, str(e), status=e.http_status, retryable=retryable)

    @app.errorhandler(404)
    def not_found(e):
        return api_error(E.NOT_FOUND, "Not found", details={"path": request.path})

    @app.errorhandler(405)
    def method_not_allowed(e):
        return api_error(E.VALIDATION, "Method not allowed", status=405)

    @app.errorhandler(429)
    def rate_limited(e):
        return api_error(
            E.RATE_LIMITED, "Too many requests", status=429,
            details={"retry_after": e.description}, retryable=True,
        )

    @app.errorhandler(Exception)
    def unhandled(e):
        if isinstance(e, HTTPException):
            return api_error(E.INTERNAL if e.code >= 500 else E.VALIDATION,
                             e.description or e.name, status=e.code)
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return api_error(E.INTERNAL, "Internal server error")


def paginate_query(query, default_limit=50, max_limit=200):
    """Apply limit/offset pagination to a SQLAlchemy query.

    Query params:
        limit  — max items (default 50, capped at max_limit)
        offset — starting position (default 0)

    Returns:
        (items_list, total_count)
    """
    total = query.count()
    try:
        limit = min(int(request.args.get("limit", default_limit)), max_limit)
    except (ValueError, TypeError):
        limit = default_limit
    try:
        offset = max(int(request.args.get("offset", 0)), 0)
    except (ValueError, TypeError):
        offset = 0
    items = query.limit(limit).offset(offset).all()
    return items, total
