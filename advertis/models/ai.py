"""
ADVERTIS Strategy Platform
AI usage tracking model.

Models:
    - AIUsageLog: token/cost/latency record for every generation call
"""

from datetime import datetime, timezone

from advertis.models import db


def calculate_cost(pricing: dict, model: str, prompt_tokens: int, completion_tokens: int) -> float:
    """Calculate USD cost for a model + token counts from a per-1M-token pricing table."""
    costs = pricing.get(model, {"input": 0.0, "output": 0.0})
    return (prompt_tokens * costs["input"] + completion_tokens * costs["output"]) / 1_000_000


class AIUsageLog(db.Model):
    """
    Tracks token usage and cost for every generation call, successful or not.
    """

    __tablename__ = "ai_usage_logs"

    id = db.Column(db.Integer, primary_key=True)
    provider = db.Column(db.String(30), nullable=False, comment="anthropic / local / scripted")
    model = db.Column(db.String(80), nullable=False)
    prompt_tokens = db.Column(db.Integer, default=0)
    completion_tokens = db.Column(db.Integer, default=0)
    total_tokens = db.Column(db.Integer, default=0)
    cost_usd = db.Column(db.Float, default=0.0)
    latency_ms = db.Column(db.Integer, default=0, comment="End-to-end latency in milliseconds")

    # Context
    user = db.Column(db.String(64), default="system")
    purpose = db.Column(db.String(100), default="", comment="e.g. fill_interview, map_freetext")
    strategy_id = db.Column(
        db.String(36), db.ForeignKey("strategies.id", ondelete="SET NULL"), nullable=True,
    )

    # Status
    success = db.Column(db.Boolean, default=True)
    retryable = db.Column(db.Boolean, default=False)
    error_message = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "provider": self.provider,
            "model": self.model,
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
            "cost_usd": round(self.cost_usd or 0.0, 6),
            "latency_ms": self.latency_ms,
            "user": self.user,
            "purpose": self.purpose,
            "strategy_id": self.strategy_id,
            "success": self.success,
            "retryable": self.retryable,
            "error_message": self.error_message,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
