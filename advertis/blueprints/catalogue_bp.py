"""
Catalogue blueprint — read-only static tables, white-labelled per role.

Endpoints:
    GET /api/v1/interview-schema            sections & variables (?priority=1 for express mode)
    GET /api/v1/pillars                     pillar catalogue (A D V E R T I S)
    GET /api/v1/phases                      phase catalogue in order
"""

from flask import Blueprint, jsonify, request

from advertis.auth import require_auth
from advertis.blueprints import current_role, get_component

catalogue_bp = Blueprint("catalogue", __name__, url_prefix="/api/v1")


def _transposer():
    return get_component("white_label")


def _tables():
    return get_component("static_tables")


@catalogue_bp.route("/interview-schema", methods=["GET"])
@require_auth
def interview_schema():
    schema = _tables().schema
    sections = schema.priority_sections() if request.args.get("priority") in ("1", "true") else schema.sections
    role = current_role()
    wl = _transposer()
    return jsonify({
        "sections": [
            {
                "pillar": s.pillar,
                "title": wl.transform(s.title, role),
                "variables": [v.to_dict() for v in s.variables],
            }
            for s in sections
        ],
        "count": sum(len(s.variables) for s in sections),
    })


@catalogue_bp.route("/pillars", methods=["GET"])
@require_auth
def pillars():
    items = [dict(p) for p in _tables().pillars]
    return jsonify({"items": _transposer().transform_pillars(items, current_role())})


@catalogue_bp.route("/phases", methods=["GET"])
@require_auth
def phases():
    role = current_role()
    items = [_transposer().transform_fields(dict(p), ("title",), role) for p in _tables().phases]
    return jsonify({"items": items})
