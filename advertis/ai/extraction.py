"""
Prompt-context shaping and model-output extraction.

- Pillar content is only used as context when the pillar is complete, and is
  cut to a fixed character budget with a visible truncation marker.
- Model output is stripped of a single fenced code block (optional ``json``
  tag) and then parsed strictly; failures raise AIResponseParseError and log
  the first 500 characters only.
- Upstream failures are classified as transient (503, retryable) when the
  message carries an overload marker or the status is 429/503/529, and as
  fatal (500) otherwise. Timeouts are fatal.
"""

import json
import logging
import re

from advertis.core.exceptions import (
    AdvertisError,
    AIResponseParseError,
    UpstreamFatalError,
    UpstreamTransientError,
    ValidationError,
)

logger = logging.getLogger(__name__)

FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
TRUNCATION_MARKER = "\n[... tronqué ...]"
SNIPPET_CHARS = 500

DEFAULT_TRANSIENT_MARKERS = ("overloaded", "try again", "surchargée", "réessayer")
TRANSIENT_STATUS_CODES = frozenset({429, 503, 529})


# ── Context shaping ──────────────────────────────────────────────────────────


def content_to_text(content) -> str:
    if isinstance(content, str):
        return content
    return json.dumps(content, ensure_ascii=False, indent=2)


def truncate_text(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + TRUNCATION_MARKER


def build_pillar_context(pillars, tables, limit: int = 3000, allowed_types=None) -> list[str]:
    """One markdown block per trusted pillar, in the given order."""
    parts = []
    for pillar in pillars:
        if allowed_types is not None and pillar.type not in allowed_types:
            continue
        if not pillar.is_trusted_context:
            continue
        body = truncate_text(content_to_text(pillar.content), limit)
        parts.append(f"### Pilier {pillar.type} — {tables.pillar_title(pillar.type)}\n{body}")
    return parts


# ── Free-text gate ───────────────────────────────────────────────────────────


def bound_freetext(text, min_chars: int = 100, max_chars: int = 50_000) -> str:
    """Trim ``text``; reject it below ``min_chars``, cut it to ``max_chars``."""
    if not isinstance(text, str) or not text.strip():
        raise ValidationError("text is required", details={"text": "required"})
    trimmed = text.strip()
    if len(trimmed) < min_chars:
        raise ValidationError(
            f"Text is too short: provide at least {min_chars} characters describing the brand.",
            details={"min_chars": min_chars, "length": len(trimmed)},
        )
    if len(trimmed) > max_chars:
        logger.info("Free text truncated from %d to %d chars", len(trimmed), max_chars)
        return trimmed[:max_chars]
    return trimmed


# ── Output extraction ────────────────────────────────────────────────────────


def strip_code_fence(text: str) -> str:
    cleaned = (text or "").strip()
    match = FENCE_RE.search(cleaned)
    if match and match.group(1):
        return match.group(1).strip()
    return cleaned


def parse_json_object(text: str, purpose: str) -> dict:
    """Strict JSON parse of a model response that must be a JSON object."""
    cleaned = strip_code_fence(text)
    try:
        parsed = json.loads(cleaned)
    except ValueError:
        parsed = None
    if not isinstance(parsed, dict):
        snippet = cleaned[:SNIPPET_CHARS]
        logger.error("Failed to parse AI response purpose=%s snippet=%r", purpose, snippet,
                     extra={"purpose": purpose})
        raise AIResponseParseError(purpose=purpose, raw_snippet=snippet)
    return parsed


# ── Upstream error classification ────────────────────────────────────────────


def is_transient_error(exc: Exception, markers=DEFAULT_TRANSIENT_MARKERS) -> bool:
    status = getattr(exc, "status_code", None)
    if status in TRANSIENT_STATUS_CODES:
        return True
    message = str(exc).lower()
    return any(marker.lower() in message for marker in markers)


def classify_upstream_error(exc: Exception, markers=DEFAULT_TRANSIENT_MARKERS) -> AdvertisError:
    """Map a provider exception to UpstreamTransientError or UpstreamFatalError."""
    if isinstance(exc, AdvertisError):
        return exc
    if is_transient_error(exc, markers):
        return UpstreamTransientError(
            "The AI service is temporarily overloaded. Please try again in a moment."
        )
    return UpstreamFatalError("AI generation failed")
