"""
ADVERTIS Strategy Platform
Strategy blueprint — strategy CRUD, interview edits, side status, phase moves.

Endpoints:
    STRATEGY    /api/v1/strategies                          GET, POST
                /api/v1/strategies/<id>                     GET, PATCH, DELETE
                /api/v1/strategies/<id>/archive             POST
                /api/v1/strategies/<id>/restore             POST

    INTERVIEW   /api/v1/strategies/<id>/interview           PATCH
                /api/v1/strategies/<id>/completion          GET

    PHASE       /api/v1/strategies/<id>/phase/advance       POST  {from_phase}
                /api/v1/strategies/<id>/phase/reset         POST  {phase}  (ADMIN)

A strategy that is missing, deleted, owned by someone else, or out of reach
of the caller's role answers 404 in every case.
"""

import logging

from flask import Blueprint, g, jsonify, request

from advertis.auth import require_auth, require_capability
from advertis.blueprints import current_role, get_component, json_body, paginate_query
from advertis.core.exceptions import ValidationError
from advertis.services import phase_machine, strategy_service
from advertis.services.interview import split_by_completion
from advertis.services.roles import MANAGE_STRATEGIES, RESET_PHASE

logger = logging.getLogger(__name__)

strategy_bp = Blueprint("strategy", __name__, url_prefix="/api/v1/strategies")


# ── Helpers ──────────────────────────────────────────────────────────────────

def _serialize(strategy, include_pillars=True):
    return strategy_service.serialize_strategy(
        strategy, current_role(),
        get_component("white_label"), get_component("static_tables"),
        include_pillars=include_pillars,
    )


def _owned(strategy_id, **kwargs):
    return strategy_service.get_owned_strategy(strategy_id, g.user_id, **kwargs)


# ═══════════════════════════════════════════════════════════════════════════
#  STRATEGY CRUD
# ═══════════════════════════════════════════════════════════════════════════

@strategy_bp.route("", methods=["GET"])
@require_auth
@require_capability(MANAGE_STRATEGIES)
def list_strategies():
    include_archived = request.args.get("include_archived", "").lower() in ("1", "true")
    q = strategy_service.owned_strategies_query(g.user_id, include_archived=include_archived)
    items, total = paginate_query(q)
    return jsonify({"items": [_serialize(s, include_pillars=False) for s in items], "total": total})


@strategy_bp.route("", methods=["POST"])
@require_auth
@require_capability(MANAGE_STRATEGIES)
def create_strategy():
    strategy = strategy_service.create_strategy(
        g.user_id, json_body(), get_component("static_tables"),
    )
    return jsonify(_serialize(strategy)), 201


@strategy_bp.route("/<strategy_id>", methods=["GET"])
@require_auth
@require_capability(MANAGE_STRATEGIES, mask_as_not_found=True)
def get_strategy(strategy_id):
    return jsonify(_serialize(_owned(strategy_id)))


@strategy_bp.route("/<strategy_id>", methods=["PATCH"])
@require_auth
@require_capability(MANAGE_STRATEGIES, mask_as_not_found=True)
def update_strategy(strategy_id):
    strategy = strategy_service.update_strategy(_owned(strategy_id), json_body())
    return jsonify(_serialize(strategy))


@strategy_bp.route("/<strategy_id>", methods=["DELETE"])
@require_auth
@require_capability(MANAGE_STRATEGIES, mask_as_not_found=True)
def delete_strategy(strategy_id):
    strategy_service.delete_strategy(_owned(strategy_id))
    return jsonify({"deleted": True, "id": strategy_id})


@strategy_bp.route("/<strategy_id>/archive", methods=["POST"])
@require_auth
@require_capability(MANAGE_STRATEGIES, mask_as_not_found=True)
def archive_strategy(strategy_id):
    strategy = strategy_service.archive_strategy(_owned(strategy_id))
    return jsonify(_serialize(strategy, include_pillars=False))


@strategy_bp.route("/<strategy_id>/restore", methods=["POST"])
@require_auth
@require_capability(MANAGE_STRATEGIES, mask_as_not_found=True)
def restore_strategy(strategy_id):
    strategy = strategy_service.restore_strategy(_owned(strategy_id, include_deleted=True))
    return jsonify(_serialize(strategy, include_pillars=False))


# ═══════════════════════════════════════════════════════════════════════════
#  INTERVIEW
# ═══════════════════════════════════════════════════════════════════════════

@strategy_bp.route("/<strategy_id>/interview", methods=["PATCH"])
@require_auth
@require_capability(MANAGE_STRATEGIES, mask_as_not_found=True)
def edit_interview(strategy_id):
    """Body: {"values": {id: str | null}, "expected_version": int?}"""
    data = json_body()
    values = data.get("values")
    if not isinstance(values, dict):
        raise ValidationError("values must be an object", details={"values": "required"})

    expected_version = data.get("expected_version")
    if expected_version is not None and (isinstance(expected_version, bool)
                                         or not isinstance(expected_version, int)):
        raise ValidationError("expected_version must be an integer",
                              details={"expected_version": expected_version})

    strategy = strategy_service.edit_interview(
        _owned(strategy_id), values, expected_version, get_component("static_tables").schema,
    )
    return jsonify({
        "id": strategy.id,
        "interview_data": strategy.interview_data or {},
        "interview_version": strategy.interview_version,
    })


@strategy_bp.route("/<strategy_id>/completion", methods=["GET"])
@require_auth
@require_capability(MANAGE_STRATEGIES, mask_as_not_found=True)
def completion(strategy_id):
    strategy = _owned(strategy_id)
    split = split_by_completion(get_component("static_tables").schema.variables, strategy.interview_data)
    return jsonify(split.to_dict())


# ═══════════════════════════════════════════════════════════════════════════
#  PHASE
# ═══════════════════════════════════════════════════════════════════════════

@strategy_bp.route("/<strategy_id>/phase/advance", methods=["POST"])
@require_auth
@require_capability(MANAGE_STRATEGIES, mask_as_not_found=True)
def advance_phase(strategy_id):
    from_phase = json_body().get("from_phase")
    if not from_phase:
        raise ValidationError("from_phase is required", details={"from_phase": "required"})
    strategy = phase_machine.advance_phase(strategy_id, g.user_id, from_phase)
    return jsonify(_serialize(strategy))


@strategy_bp.route("/<strategy_id>/phase/reset", methods=["POST"])
@require_auth
@require_capability(RESET_PHASE)
def reset_phase(strategy_id):
    target = json_body().get("phase")
    if not target:
        raise ValidationError("phase is required", details={"phase": "required"})
    strategy = phase_machine.reset_phase(strategy_id, target)
    logger.warning("Administrative phase reset by user=%s strategy=%s", g.user_id, strategy_id,
                   extra={"user_id": g.user_id, "strategy_id": strategy_id})
    return jsonify(_serialize(strategy))
