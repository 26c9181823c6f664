"""
Strategy service: creation, owner-scoped access, interview edits, side status.

Every lookup is scoped by the owning user. A strategy that exists but belongs
to someone else is reported exactly like a missing one (NotFoundError → 404).

Interview data is written only through ``write_interview_data``, a
compare-and-swap on ``interview_version``. A write based on a stale version
raises ConflictError instead of silently overwriting a concurrent change.

Usage:
    from advertis.services import strategy_service

    s = strategy_service.create_strategy(user_id, {"brand_name": "Acme"}, tables)
    s = strategy_service.get_owned_strategy(s.id, user_id)
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select, update

from advertis.core.exceptions import ConflictError, NotFoundError, ValidationError
from advertis.models import db
from advertis.models.strategy import NODE_TYPES, PILLAR_TYPES, Pillar, Strategy
from advertis.services.interview import is_filled
from advertis.services.roles import is_internal

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = ("brand_name", "sector", "description")
_CREATE_TEXT_FIELDS = _UPDATABLE_FIELDS + ("node_type", "parent_id")


# ── Lookup ───────────────────────────────────────────────────────────────────


def get_owned_strategy(strategy_id: str, user_id: str, *, include_deleted: bool = False) -> Strategy:
    """Fetch a strategy owned by ``user_id``.

    Raises:
        NotFoundError: missing, soft-deleted (unless ``include_deleted``), or
            owned by another user. The three cases are indistinguishable.
    """
    stmt = select(Strategy).where(Strategy.id == strategy_id, Strategy.user_id == user_id)
    if not include_deleted:
        stmt = stmt.where(Strategy.deleted_at.is_(None))
    strategy = db.session.execute(stmt).scalar_one_or_none()
    if strategy is None:
        logger.debug("Strategy lookup miss id=%s user=%s", strategy_id, user_id)
        raise NotFoundError(resource="Strategy", resource_id=strategy_id)
    return strategy


def get_strategy(strategy_id: str) -> Strategy:
    """Unscoped lookup for administrative operations only."""
    strategy = db.session.get(Strategy, strategy_id)
    if strategy is None or strategy.is_deleted:
        raise NotFoundError(resource="Strategy", resource_id=strategy_id)
    return strategy


def owned_strategies_query(user_id: str, *, include_archived: bool = False):
    """Query of strategies owned by ``user_id``, newest first. Deleted ones are never listed."""
    q = Strategy.query_active().filter_by(user_id=user_id)
    if not include_archived:
        q = q.filter(Strategy.archived_at.is_(None))
    return q.order_by(Strategy.created_at.desc())


def _check_text_fields(data: dict, fields) -> None:
    bad = sorted(f for f in fields if data.get(f) is not None and not isinstance(data[f], str))
    if bad:
        raise ValidationError(
            "Fields must be strings or null", details={f: "must be a string" for f in bad},
        )


def list_strategies(user_id: str, *, include_archived: bool = False) -> list[Strategy]:
    return owned_strategies_query(user_id, include_archived=include_archived).all()


# ── Create / update ──────────────────────────────────────────────────────────


def create_strategy(user_id: str, data: dict, tables) -> Strategy:
    """Create a strategy in phase ``fiche`` and seed its eight pillars as pending.

    Args:
        user_id: Owner (subject of the session token).
        data: ``brand_name`` required; ``sector``, ``description``,
              ``node_type``, ``parent_id`` and ``interview_data`` optional.
        tables: StaticTables providing pillar titles and the variable schema.
    """
    _check_text_fields(data, _CREATE_TEXT_FIELDS)
    brand_name = (data.get("brand_name") or "").strip()
    if not brand_name:
        raise ValidationError("brand_name is required", details={"brand_name": "required"})

    node_type = data.get("node_type") or "brand"
    if node_type not in NODE_TYPES:
        raise ValidationError(
            f"node_type must be one of {sorted(NODE_TYPES)}", details={"node_type": node_type},
        )

    parent_id = data.get("parent_id")
    if parent_id:
        # parent must belong to the same owner
        get_owned_strategy(parent_id, user_id)

    interview_data = _clean_interview_values(data.get("interview_data") or {}, tables.schema)

    strategy = Strategy(
        user_id=user_id,
        brand_name=brand_name,
        sector=data.get("sector"),
        description=data.get("description"),
        node_type=node_type,
        parent_id=parent_id,
        interview_data=interview_data,
        interview_version=0,
        phase="fiche",
        status="idle",
    )
    db.session.add(strategy)
    db.session.flush()

    for idx, pillar_type in enumerate(PILLAR_TYPES, start=1):
        entry = tables.pillar_entry(pillar_type) or {}
        db.session.add(Pillar(
            strategy_id=strategy.id,
            type=pillar_type,
            title=entry.get("title", pillar_type),
            order=entry.get("order", idx),
            status="pending",
        ))

    db.session.commit()
    logger.info("Strategy created id=%s user=%s brand=%r", strategy.id, user_id, brand_name)
    return strategy


def update_strategy(strategy: Strategy, data: dict) -> Strategy:
    """Update descriptive fields. Only whitelisted fields are touched."""
    _check_text_fields(data, _UPDATABLE_FIELDS)
    for f in _UPDATABLE_FIELDS:
        if f in data:
            setattr(strategy, f, data[f])
    if not (strategy.brand_name or "").strip():
        raise ValidationError("brand_name cannot be empty", details={"brand_name": "required"})
    db.session.commit()
    logger.info("Strategy updated id=%s", strategy.id)
    return strategy


def _clean_interview_values(values: dict, schema) -> dict:
    if not isinstance(values, dict):
        raise ValidationError("interview_data must be an object")
    unknown = sorted(k for k in values if schema.get(k) is None)
    if unknown:
        raise ValidationError(
            "Unknown interview variable id(s)", details={"unknown_ids": unknown},
        )
    bad = sorted(k for k, v in values.items() if v is not None and not isinstance(v, str))
    if bad:
        raise ValidationError(
            "Interview values must be strings or null", details={"invalid_ids": bad},
        )
    return dict(values)


def write_interview_data(strategy: Strategy, new_data: dict, expected_version: int) -> Strategy:
    """Persist ``new_data`` if the stored version still equals ``expected_version``.

    Bumps ``interview_version`` by one on success.

    Raises:
        ConflictError: the stored version moved on since the caller read it.
    """
    result = db.session.execute(
        update(Strategy)
        .where(Strategy.id == strategy.id, Strategy.interview_version == expected_version)
        .values(
            interview_data=new_data,
            interview_version=expected_version + 1,
            updated_at=datetime.now(timezone.utc),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.session.rollback()
        actual = db.session.execute(
            select(Strategy.interview_version).where(Strategy.id == strategy.id)
        ).scalar_one_or_none()
        if actual is None:
            raise NotFoundError(resource="Strategy", resource_id=strategy.id)
        logger.warning(
            "Stale interview write strategy=%s expected=%s actual=%s",
            strategy.id, expected_version, actual,
        )
        raise ConflictError("Strategy", expected_version, actual)

    db.session.commit()
    db.session.refresh(strategy)
    return strategy


def edit_interview(strategy: Strategy, values: dict, expected_version: int | None, schema) -> Strategy:
    """Explicit user edit of interview variables.

    This is the only path allowed to overwrite a non-empty value. ``None`` or
    a blank string clears the variable.
    """
    values = _clean_interview_values(values, schema)
    base_version = strategy.interview_version if expected_version is None else expected_version

    merged = dict(strategy.interview_data or {})
    for key, value in values.items():
        if is_filled(value):
            merged[key] = value
        else:
            merged.pop(key, None)

    write_interview_data(strategy, merged, base_version)
    logger.info("Interview edited strategy=%s ids=%s version=%s",
                strategy.id, sorted(values), strategy.interview_version)
    return strategy


# ── Side status ──────────────────────────────────────────────────────────────


def archive_strategy(strategy: Strategy) -> Strategy:
    strategy.archive()
    db.session.commit()
    logger.info("Strategy archived id=%s", strategy.id)
    return strategy


def restore_strategy(strategy: Strategy) -> Strategy:
    strategy.restore()
    db.session.commit()
    logger.info("Strategy restored id=%s phase=%s", strategy.id, strategy.phase)
    return strategy


def delete_strategy(strategy: Strategy) -> None:
    """Soft delete. The phase is left untouched so a restore resumes in place."""
    strategy.soft_delete()
    db.session.commit()
    logger.info("Strategy soft-deleted id=%s", strategy.id)


# ── Serialization ────────────────────────────────────────────────────────────


def serialize_strategy(strategy: Strategy, role, transposer, tables, *, include_pillars: bool = True) -> dict:
    """Strategy dict with label-bearing fields transposed for ``role``."""
    data = strategy.to_dict(include_pillars=include_pillars)
    data["phase_title"] = transposer.transform(tables.phase_title(strategy.phase), role)
    if include_pillars:
        data["pillars"] = transposer.transform_pillars(data["pillars"], role)
    if not is_internal(role):
        data.pop("user_id", None)
    return data
