"""
ADVERTIS Strategy Platform
Strategy domain models.

Models:
    - Strategy:     central aggregate, one owner, carries interview data and phase
    - Pillar:       one content block per pillar type (A, D, V, E, R, T, I, S)
    - MarketStudy:  one-to-one with Strategy, append-only collected data

Architecture:
    Strategy ──1:N──▶ Pillar
    Strategy ──1:1──▶ MarketStudy
    Strategy ──1:N──▶ Strategy  (brand tree via parent_id / node_type)

Lifecycle:
    Strategy.phase:     fiche → market-study → audit-t → audit-review
                        → implementation → cockpit → complete
    Strategy.status:    idle | generating | error
    Pillar.status:      pending → generating → complete | error
    MarketStudy.status: pending → complete | skipped
"""

import uuid
from datetime import datetime, timezone

from advertis.models import db
from advertis.models.soft_delete import SideStatusMixin


# ── Constants ────────────────────────────────────────────────────────────────

PHASES = [
    "fiche",
    "market-study",
    "audit-t",
    "audit-review",
    "implementation",
    "cockpit",
    "complete",
]

PHASE_ORDER = {phase: idx for idx, phase in enumerate(PHASES)}

NODE_TYPES = {"brand", "sub_brand", "product", "range"}

PILLAR_TYPES = ["A", "D", "V", "E", "R", "T", "I", "S"]

# Pillars whose content feeds interview auto-fill
FICHE_PILLARS = ["A", "D", "V", "E"]

MANUAL_DATA_CATEGORIES = {"internal", "external", "interview"}


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


# ── Strategy ──────────────────────────────────────────────────────────────────

class Strategy(SideStatusMixin, db.Model):
    """
    A brand strategy owned by exactly one user.

    ``interview_data`` is a sparse mapping of interview-variable id → text.
    ``interview_version`` is bumped on every write to ``interview_data`` and
    acts as the optimistic concurrency token for merges and edits.
    """

    __tablename__ = "strategies"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    user_id = db.Column(db.String(64), nullable=False, index=True)

    brand_name = db.Column(db.String(200), nullable=False)
    sector = db.Column(db.String(100), nullable=True)
    description = db.Column(db.Text, nullable=True)

    interview_data = db.Column(db.JSON, nullable=False, default=dict)
    interview_version = db.Column(db.Integer, nullable=False, default=0)

    phase = db.Column(db.String(30), nullable=False, default="fiche", index=True)
    status = db.Column(db.String(20), nullable=False, default="idle")
    coherence_score = db.Column(db.Integer, nullable=True, comment="0-100, null until computed")

    node_type = db.Column(db.String(20), nullable=False, default="brand")
    parent_id = db.Column(
        db.String(36), db.ForeignKey("strategies.id", ondelete="SET NULL"), nullable=True,
    )

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    pillars = db.relationship(
        "Pillar", backref="strategy", lazy="dynamic",
        cascade="all, delete-orphan", order_by="Pillar.order",
    )
    market_study = db.relationship(
        "MarketStudy", backref="strategy", uselist=False,
        cascade="all, delete-orphan",
    )
    children = db.relationship(
        "Strategy", backref=db.backref("parent", remote_side=[id]), lazy="dynamic",
    )

    def to_dict(self, include_pillars=False):
        result = {
            "id": self.id,
            "user_id": self.user_id,
            "brand_name": self.brand_name,
            "sector": self.sector,
            "description": self.description,
            "interview_data": dict(self.interview_data or {}),
            "interview_version": self.interview_version,
            "phase": self.phase,
            "status": self.status,
            "coherence_score": self.coherence_score,
            "node_type": self.node_type,
            "parent_id": self.parent_id,
            "side_status": self.side_status,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if include_pillars:
            result["pillars"] = [p.to_dict() for p in self.pillars.all()]
        return result

    def __repr__(self):
        return f"<Strategy {self.id} {self.brand_name!r} phase={self.phase}>"


# ── Pillar ────────────────────────────────────────────────────────────────────

class Pillar(db.Model):
    """One pillar of a strategy. Content is trusted as AI context only when complete."""

    __tablename__ = "pillars"
    __table_args__ = (
        db.UniqueConstraint("strategy_id", "type", name="uq_pillar_strategy_type"),
    )

    id = db.Column(db.Integer, primary_key=True)
    strategy_id = db.Column(
        db.String(36), db.ForeignKey("strategies.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    type = db.Column(db.String(2), nullable=False)
    title = db.Column(db.String(100), nullable=False)
    order = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(20), nullable=False, default="pending")
    content = db.Column(db.JSON, nullable=True, comment="Structured dict or plain string")
    error_message = db.Column(db.Text, nullable=True)

    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    @property
    def is_trusted_context(self):
        return self.status == "complete" and bool(self.content)

    def to_dict(self):
        return {
            "id": self.id,
            "strategy_id": self.strategy_id,
            "type": self.type,
            "title": self.title,
            "order": self.order,
            "status": self.status,
            "content": self.content,
            "error_message": self.error_message,
            "updated_at": _iso(self.updated_at),
        }


# ── MarketStudy ───────────────────────────────────────────────────────────────

class MarketStudy(db.Model):
    """
    Market study attached to a strategy.

    ``uploaded_files`` is a list of parsed-file entries; ``manual_data`` is
    ``{"entries": [...]}``. Both blobs are rewritten whole on every change.
    """

    __tablename__ = "market_studies"

    id = db.Column(db.Integer, primary_key=True)
    strategy_id = db.Column(
        db.String(36), db.ForeignKey("strategies.id", ondelete="CASCADE"),
        nullable=False, unique=True,
    )
    status = db.Column(db.String(20), nullable=False, default="pending")
    uploaded_files = db.Column(db.JSON, nullable=False, default=list)
    manual_data = db.Column(db.JSON, nullable=False, default=lambda: {"entries": []})

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "strategy_id": self.strategy_id,
            "status": self.status,
            "uploaded_files": list(self.uploaded_files or []),
            "manual_data": dict(self.manual_data or {"entries": []}),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
