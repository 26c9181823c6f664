"""
Market study records: get/ensure, manual data entries, uploaded files.

``manual_data`` is ``{"entries": [...]}`` and ``uploaded_files`` a list.
Both JSON blobs are append-then-rewrite: adding pushes a new entry, removing
filters by id, and the whole blob is written back in one record update.

Entry shapes:
    manual:   {id, title, content, category, sourceType, addedAt}
    uploaded: {id, fileName, fileType, extractedText, uploadedAt}
"""

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import select

from advertis.core.exceptions import NotFoundError, ValidationError
from advertis.models import db
from advertis.models.strategy import MANUAL_DATA_CATEGORIES, MarketStudy
from advertis.services import strategy_service

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _find(strategy_id: str) -> MarketStudy | None:
    return db.session.execute(
        select(MarketStudy).where(MarketStudy.strategy_id == strategy_id)
    ).scalar_one_or_none()


def get_market_study(strategy_id: str, user_id: str) -> MarketStudy | None:
    """Return the study, or None if the strategy has none yet."""
    strategy_service.get_owned_strategy(strategy_id, user_id)
    return _find(strategy_id)


def ensure_market_study(strategy_id: str, user_id: str) -> MarketStudy:
    """Create a pending study if none exists; return the existing one otherwise."""
    strategy_service.get_owned_strategy(strategy_id, user_id)
    study = _find(strategy_id)
    if study is None:
        study = MarketStudy(strategy_id=strategy_id, status="pending", uploaded_files=[],
                            manual_data={"entries": []})
        db.session.add(study)
        db.session.commit()
        logger.info("MarketStudy created strategy=%s", strategy_id)
    return study


def _require_text(data: dict, field: str) -> str:
    value = data.get(field)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required", details={field: "required"})
    return value


def add_manual_entry(strategy_id: str, user_id: str, data: dict) -> MarketStudy:
    """Append a manual entry, creating the study if needed."""
    title = _require_text(data, "title")
    content = _require_text(data, "content")
    source_type = _require_text(data, "sourceType")
    category = data.get("category")
    if category not in MANUAL_DATA_CATEGORIES:
        raise ValidationError(
            f"category must be one of {sorted(MANUAL_DATA_CATEGORIES)}",
            details={"category": category},
        )

    study = ensure_market_study(strategy_id, user_id)
    store = dict(study.manual_data or {})
    entries = list(store.get("entries") or [])
    entry = {
        "id": str(uuid.uuid4()),
        "title": title,
        "content": content,
        "category": category,
        "sourceType": source_type,
        "addedAt": _now_iso(),
    }
    entries.append(entry)
    store["entries"] = entries
    study.manual_data = store
    db.session.commit()
    logger.info("Manual entry added strategy=%s entry=%s category=%s", strategy_id, entry["id"], category)
    return study


def remove_manual_entry(strategy_id: str, user_id: str, entry_id: str) -> MarketStudy:
    """Drop the entry with ``entry_id``. Unknown ids leave the blob unchanged."""
    strategy_service.get_owned_strategy(strategy_id, user_id)
    study = _find(strategy_id)
    if study is None:
        raise NotFoundError(resource="MarketStudy", resource_id=strategy_id)

    store = dict(study.manual_data or {})
    entries = [e for e in (store.get("entries") or []) if e.get("id") != entry_id]
    store["entries"] = entries
    study.manual_data = store
    db.session.commit()
    logger.info("Manual entry removed strategy=%s entry=%s", strategy_id, entry_id)
    return study


def append_uploaded_file(strategy_id: str, user_id: str, data: dict, max_chars: int = 50_000) -> MarketStudy:
    """Append an already-parsed file. ``extractedText`` is cut to ``max_chars``."""
    file_name = _require_text(data, "fileName")
    file_type = data.get("fileType") or "text/plain"
    extracted = data.get("extractedText") or ""
    if not isinstance(extracted, str):
        raise ValidationError("extractedText must be a string", details={"extractedText": "invalid"})

    study = ensure_market_study(strategy_id, user_id)
    files = list(study.uploaded_files or [])
    files.append({
        "id": str(uuid.uuid4()),
        "fileName": file_name,
        "fileType": file_type,
        "extractedText": extracted[:max_chars],
        "uploadedAt": _now_iso(),
    })
    study.uploaded_files = files
    db.session.commit()
    logger.info("Uploaded file appended strategy=%s file=%r chars=%d",
                strategy_id, file_name, min(len(extracted), max_chars))
    return study
