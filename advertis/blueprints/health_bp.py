"""
Health check blueprint.

Endpoints:
    GET /api/v1/health        — simple 200 for load balancers
    GET /api/v1/health/live   — database reachability, provider and static tables
"""

import logging
import time

from flask import Blueprint, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError

from advertis.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health_bp", __name__, url_prefix="/api/v1/health")


@health_bp.route("", methods=["GET"])
def ready():
    """Readiness probe: always 200 if the app is running."""
    return jsonify({"status": "ok", "app": "ADVERTIS"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    """Detailed liveness check with dependency status."""
    checks = {}
    overall = True

    # ── Database ─────────────────────────────────────────────────────
    try:
        t0 = time.perf_counter()
        db.session.execute(db.text("SELECT 1"))
        db_ms = (time.perf_counter() - t0) * 1000
        checks["database"] = {"status": "ok", "latency_ms": round(db_ms, 1)}
    except SQLAlchemyError as exc:
        db.session.rollback()
        checks["database"] = {"status": "error", "detail": str(exc)}
        overall = False
        logger.error("Health check — database failed: %s", exc)

    # ── Generation provider ──────────────────────────────────────────
    gateway = current_app.extensions["ai_gateway"]
    checks["ai_provider"] = {"status": "ok", "provider": gateway.provider.name, "model": gateway.model}

    # ── Static tables ────────────────────────────────────────────────
    tables = current_app.extensions["static_tables"]
    checks["static_tables"] = {
        "status": "ok",
        "interview_variables": tables.schema.count(),
        "white_label_entries": len(tables.white_label),
    }

    status_code = 200 if overall else 503
    return jsonify({
        "status": "healthy" if overall else "degraded",
        "checks": checks,
    }), status_code
