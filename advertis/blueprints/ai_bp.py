"""
ADVERTIS Strategy Platform
AI Blueprint.

Endpoints:
    FILL         /api/v1/ai/fill-interview      POST  {strategyId}
    FREE TEXT    /api/v1/ai/freetext            POST  {text, brandName?, sector?}
    USAGE        /api/v1/ai/usage               GET   caller's own calls (?days=30)
    PROMPTS      /api/v1/ai/prompts             GET   registered templates (internal roles)

Generation endpoints share one rate limit (``AI_RATE_LIMIT``). Upstream
failures come back as 503 with ``retryable: true`` or 500 otherwise.
"""

import logging
from datetime import datetime, timedelta, timezone

from flask import Blueprint, current_app, g, jsonify, request

from advertis import limiter
from advertis.auth import require_auth, require_capability
from advertis.blueprints import get_component, json_body
from advertis.core.exceptions import ValidationError
from advertis.models.ai import AIUsageLog
from advertis.services.roles import MANAGE_STRATEGIES, RUN_AI, VIEW_INTERNAL_LABELS

logger = logging.getLogger(__name__)

ai_bp = Blueprint("ai", __name__, url_prefix="/api/v1/ai")

# ── Rate limiting ─────────────────────────────────────────────────────────

_ai_generate_limit = limiter.shared_limit(
    lambda: current_app.config.get("AI_RATE_LIMIT", "30 per minute"), scope="ai_generate",
)


# ═══════════════════════════════════════════════════════════════════════════
#  INTERVIEW AUTO-FILL
# ═══════════════════════════════════════════════════════════════════════════

@ai_bp.route("/fill-interview", methods=["POST"])
@_ai_generate_limit
@require_auth
@require_capability(MANAGE_STRATEGIES, mask_as_not_found=True)
@require_capability(RUN_AI, mask_as_not_found=True)
def fill_interview():
    """Fill every empty interview variable of a strategy. Filled ones are never touched."""
    strategy_id = json_body().get("strategyId")
    if not strategy_id or not isinstance(strategy_id, str):
        raise ValidationError("strategyId is required", details={"strategyId": "required"})

    result = get_component("interview_filler").fill(strategy_id, g.user_id)
    return jsonify(result)


# ═══════════════════════════════════════════════════════════════════════════
#  FREE TEXT → VARIABLES
# ═══════════════════════════════════════════════════════════════════════════

@ai_bp.route("/freetext", methods=["POST"])
@_ai_generate_limit
@require_auth
@require_capability(RUN_AI)
def map_freetext():
    """Propose interview values from a free description. Nothing is persisted."""
    data = json_body()
    result = get_component("variable_mapper").map_text(
        data.get("text"),
        brand_name=data.get("brandName"),
        sector=data.get("sector"),
        user=g.user_id,
    )
    return jsonify(result)


# ═══════════════════════════════════════════════════════════════════════════
#  USAGE
# ═══════════════════════════════════════════════════════════════════════════

@ai_bp.route("/usage", methods=["GET"])
@require_auth
@require_capability(RUN_AI)
def usage_stats():
    """Token usage and cost of the caller's own generation calls."""
    days = request.args.get("days", 30, type=int)
    cutoff = datetime.now(timezone.utc) - timedelta(days=days)

    logs = (
        AIUsageLog.query
        .filter(AIUsageLog.user == g.user_id, AIUsageLog.created_at >= cutoff)
        .order_by(AIUsageLog.created_at.desc())
        .all()
    )

    by_purpose = {}
    for log in logs:
        p = log.purpose or "other"
        if p not in by_purpose:
            by_purpose[p] = {"calls": 0, "tokens": 0, "cost": 0.0}
        by_purpose[p]["calls"] += 1
        by_purpose[p]["tokens"] += log.total_tokens
        by_purpose[p]["cost"] += log.cost_usd

    total_calls = len(logs)
    return jsonify({
        "period_days": days,
        "total_calls": total_calls,
        "total_tokens": sum(log.total_tokens for log in logs),
        "total_cost_usd": round(sum(log.cost_usd for log in logs), 6),
        "error_count": sum(1 for log in logs if not log.success),
        "avg_latency_ms": round(sum(log.latency_ms for log in logs) / max(total_calls, 1), 1),
        "by_purpose": by_purpose,
        "recent": [log.to_dict() for log in logs[:20]],
    })


# ═══════════════════════════════════════════════════════════════════════════
#  PROMPTS
# ═══════════════════════════════════════════════════════════════════════════

@ai_bp.route("/prompts", methods=["GET"])
@require_auth
@require_capability(VIEW_INTERNAL_LABELS)
def list_prompts():
    """Registered prompt templates (name, version, system/user text)."""
    return jsonify({"items": get_component("prompt_registry").list_templates()})
