"""
Session blueprint.

Endpoints:
    GET /api/v1/session     resolved identity of the bearer token
"""

from flask import Blueprint, g, jsonify

from advertis.auth import require_auth
from advertis.services.roles import home_path, is_internal

session_bp = Blueprint("session", __name__, url_prefix="/api/v1/session")


@session_bp.route("", methods=["GET"])
@require_auth
def whoami():
    """Role, capabilities and landing page for the current session."""
    return jsonify({
        "user_id": g.user_id,
        "role": g.role,
        "is_internal": is_internal(g.role),
        "capabilities": sorted(g.capabilities),
        "home_path": home_path(g.role),
    })
