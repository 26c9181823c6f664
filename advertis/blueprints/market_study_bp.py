"""
ADVERTIS Strategy Platform
Market study blueprint.

Endpoints (prefix /api/v1/strategies/<id>/market-study):
    ""                                  GET (record or null), POST (ensure)
    /complete                           POST  market-study → audit-t
    /skip                               POST  market-study → audit-t, study skipped
    /complete-standalone                POST  study complete, phase untouched
    /manual-data                        POST  append manual entry
    /manual-data/<entry_id>             DELETE
    /uploaded-files                     POST  append already-extracted file text
"""

from flask import Blueprint, current_app, g, jsonify

from advertis.auth import require_auth, require_capability
from advertis.blueprints import current_role, get_component, json_body
from advertis.services import market_study_service, phase_machine, strategy_service
from advertis.services.roles import MANAGE_STRATEGIES

market_study_bp = Blueprint(
    "market_study", __name__, url_prefix="/api/v1/strategies/<strategy_id>/market-study",
)


def _serialize_strategy(strategy):
    return strategy_service.serialize_strategy(
        strategy, current_role(),
        get_component("white_label"), get_component("static_tables"),
    )


@market_study_bp.route("", methods=["GET"])
@require_auth
@require_capability(MANAGE_STRATEGIES, mask_as_not_found=True)
def get_market_study(strategy_id):
    study = market_study_service.get_market_study(strategy_id, g.user_id)
    return jsonify(study.to_dict() if study else None)


@market_study_bp.route("", methods=["POST"])
@require_auth
@require_capability(MANAGE_STRATEGIES, mask_as_not_found=True)
def ensure_market_study(strategy_id):
    study = market_study_service.ensure_market_study(strategy_id, g.user_id)
    return jsonify(study.to_dict())


@market_study_bp.route("/complete", methods=["POST"])
@require_auth
@require_capability(MANAGE_STRATEGIES, mask_as_not_found=True)
def complete(strategy_id):
    strategy = phase_machine.complete_market_study(strategy_id, g.user_id)
    return jsonify(_serialize_strategy(strategy))


@market_study_bp.route("/skip", methods=["POST"])
@require_auth
@require_capability(MANAGE_STRATEGIES, mask_as_not_found=True)
def skip(strategy_id):
    strategy = phase_machine.skip_market_study(strategy_id, g.user_id)
    return jsonify(_serialize_strategy(strategy))


@market_study_bp.route("/complete-standalone", methods=["POST"])
@require_auth
@require_capability(MANAGE_STRATEGIES, mask_as_not_found=True)
def complete_standalone(strategy_id):
    study = phase_machine.complete_standalone(strategy_id, g.user_id)
    return jsonify(study.to_dict())


@market_study_bp.route("/manual-data", methods=["POST"])
@require_auth
@require_capability(MANAGE_STRATEGIES, mask_as_not_found=True)
def add_manual_data(strategy_id):
    study = market_study_service.add_manual_entry(strategy_id, g.user_id, json_body())
    return jsonify(study.to_dict()), 201


@market_study_bp.route("/manual-data/<entry_id>", methods=["DELETE"])
@require_auth
@require_capability(MANAGE_STRATEGIES, mask_as_not_found=True)
def remove_manual_data(strategy_id, entry_id):
    study = market_study_service.remove_manual_entry(strategy_id, g.user_id, entry_id)
    return jsonify(study.to_dict())


@market_study_bp.route("/uploaded-files", methods=["POST"])
@require_auth
@require_capability(MANAGE_STRATEGIES, mask_as_not_found=True)
def upload_file(strategy_id):
    study = market_study_service.append_uploaded_file(
        strategy_id, g.user_id, json_body(),
        max_chars=current_app.config.get("UPLOAD_TEXT_MAX_CHARS", 50_000),
    )
    return jsonify(study.to_dict()), 201
