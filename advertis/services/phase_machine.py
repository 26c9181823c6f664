"""
Strategy phase state machine.

Phases (ordered):
    fiche → market-study → audit-t → audit-review → implementation → cockpit → complete

Transitions:
    complete_market_study   market-study → audit-t, study status complete, strategy generating
    skip_market_study       market-study → audit-t, study created if missing, status skipped
    complete_standalone     study status complete, phase untouched
    advance_phase           generic step to the next phase (not from market-study)
    reset_phase             administrative jump to any phase, backwards allowed

Every transition is a conditional ``UPDATE ... WHERE phase = :required``.
When no row matches, the current phase is re-read and reported in an
InvalidPhaseError, so a double submission fails the second time with a
message naming both the required and the actual phase.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select, update

from advertis.core.exceptions import InvalidPhaseError, NotFoundError, ValidationError
from advertis.models import db
from advertis.models.strategy import PHASE_ORDER, PHASES, MarketStudy, Strategy
from advertis.services import strategy_service

logger = logging.getLogger(__name__)

MARKET_STUDY_PHASE = "market-study"
POST_MARKET_STUDY_PHASE = "audit-t"
TERMINAL_PHASE = "complete"


def next_phase(phase: str) -> str | None:
    idx = PHASE_ORDER.get(phase)
    if idx is None or idx + 1 >= len(PHASES):
        return None
    return PHASES[idx + 1]


def _guarded_phase_update(strategy_id: str, required_phase: str, action: str, **values) -> None:
    """Apply ``values`` only if the stored phase equals ``required_phase``.

    Leaves the change pending in the session; the caller commits.
    """
    values.setdefault("updated_at", datetime.now(timezone.utc))
    result = db.session.execute(
        update(Strategy)
        .where(Strategy.id == strategy_id, Strategy.phase == required_phase)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 1:
        return

    db.session.rollback()
    actual = db.session.execute(
        select(Strategy.phase).where(Strategy.id == strategy_id)
    ).scalar_one_or_none()
    if actual is None:
        raise NotFoundError(resource="Strategy", resource_id=strategy_id)
    logger.info(
        "Phase guard rejected action=%s strategy=%s required=%s actual=%s",
        action, strategy_id, required_phase, actual,
    )
    raise InvalidPhaseError(required_phase=required_phase, actual_phase=actual, action=action)


def _find_market_study(strategy_id: str) -> MarketStudy | None:
    return db.session.execute(
        select(MarketStudy).where(MarketStudy.strategy_id == strategy_id)
    ).scalar_one_or_none()


def _ensure_market_study(strategy_id: str) -> MarketStudy:
    study = _find_market_study(strategy_id)
    if study is None:
        study = MarketStudy(strategy_id=strategy_id, status="pending", uploaded_files=[],
                            manual_data={"entries": []})
        db.session.add(study)
        db.session.flush()
    return study


def _finish(strategy: Strategy) -> Strategy:
    db.session.commit()
    db.session.refresh(strategy)
    return strategy


# ── Market study transitions ─────────────────────────────────────────────────


def complete_market_study(strategy_id: str, user_id: str) -> Strategy:
    """Mark the study complete and move the strategy to ``audit-t`` / generating.

    Raises:
        NotFoundError: strategy not owned, or no market study record.
        InvalidPhaseError: strategy is not in ``market-study``.
    """
    strategy = strategy_service.get_owned_strategy(strategy_id, user_id)
    _guarded_phase_update(
        strategy_id, MARKET_STUDY_PHASE, "complete the market study",
        phase=POST_MARKET_STUDY_PHASE, status="generating",
    )
    study = _find_market_study(strategy_id)
    if study is None:
        db.session.rollback()
        raise NotFoundError(resource="MarketStudy", resource_id=strategy_id)
    study.status = "complete"
    _finish(strategy)
    logger.info("Market study completed strategy=%s phase=%s", strategy_id, strategy.phase)
    return strategy


def skip_market_study(strategy_id: str, user_id: str) -> Strategy:
    """Skip the study: create it if missing, mark it skipped, move to ``audit-t``."""
    strategy = strategy_service.get_owned_strategy(strategy_id, user_id)
    _guarded_phase_update(
        strategy_id, MARKET_STUDY_PHASE, "skip the market study",
        phase=POST_MARKET_STUDY_PHASE, status="generating",
    )
    study = _ensure_market_study(strategy_id)
    study.status = "skipped"
    _finish(strategy)
    logger.info("Market study skipped strategy=%s", strategy_id)
    return strategy


def complete_standalone(strategy_id: str, user_id: str) -> MarketStudy:
    """Mark an existing study complete without touching the strategy phase."""
    strategy_service.get_owned_strategy(strategy_id, user_id)
    study = _find_market_study(strategy_id)
    if study is None:
        raise NotFoundError(resource="MarketStudy", resource_id=strategy_id)
    study.status = "complete"
    db.session.commit()
    logger.info("Market study completed standalone strategy=%s", strategy_id)
    return study


# ── Generic transitions ──────────────────────────────────────────────────────


def advance_phase(strategy_id: str, user_id: str, from_phase: str) -> Strategy:
    """Move to the phase after ``from_phase`` if the strategy is still there.

    Entering ``market-study`` creates the study record. Leaving it goes
    through complete/skip only.
    """
    if from_phase not in PHASE_ORDER:
        raise ValidationError(f"Unknown phase: {from_phase}", details={"from_phase": from_phase})
    if from_phase == TERMINAL_PHASE:
        raise ValidationError("Strategy is already complete", details={"from_phase": from_phase})

    strategy = strategy_service.get_owned_strategy(strategy_id, user_id)
    if from_phase == MARKET_STUDY_PHASE:
        raise InvalidPhaseError(
            MARKET_STUDY_PHASE, strategy.phase, action="advance",
            message="Leave the market-study phase with complete or skip",
        )
    target = next_phase(from_phase)
    _guarded_phase_update(strategy_id, from_phase, f"advance to {target}", phase=target)
    if target == MARKET_STUDY_PHASE:
        _ensure_market_study(strategy_id)
    _finish(strategy)
    logger.info("Phase advanced strategy=%s %s → %s", strategy_id, from_phase, target)
    return strategy


def reset_phase(strategy_id: str, target_phase: str) -> Strategy:
    """Administrative reset to any phase. Callers must check the ADMIN role."""
    if target_phase not in PHASE_ORDER:
        raise ValidationError(f"Unknown phase: {target_phase}", details={"phase": target_phase})

    strategy = strategy_service.get_strategy(strategy_id)
    previous = strategy.phase
    _guarded_phase_update(strategy_id, previous, f"reset to {target_phase}",
                          phase=target_phase, status="idle")
    if target_phase == MARKET_STUDY_PHASE:
        _ensure_market_study(strategy_id)
    _finish(strategy)
    logger.warning("Phase reset strategy=%s %s → %s", strategy_id, previous, target_phase)
    return strategy
