"""Standardised API error responses.

Usage
-----
    from advertis.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Strategy not found")
    return api_error(E.VALIDATION_REQUIRED, "brand_name is required")
    return api_error(E.UPSTREAM_TRANSIENT, "Model overloaded", retryable=True)
"""

from __future__ import annotations

from flask import jsonify


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants (``ERR_`` prefix)."""

    # Validation – HTTP 400
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    VALIDATION = "ERR_VALIDATION"
    INVALID_PHASE = "ERR_INVALID_PHASE"

    # Auth – HTTP 401 / 403
    UNAUTHENTICATED = "ERR_UNAUTHENTICATED"
    FORBIDDEN = "ERR_FORBIDDEN"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Conflict – HTTP 409
    CONFLICT_STALE = "ERR_CONFLICT_STALE"

    # Throttling – HTTP 429
    RATE_LIMITED = "ERR_RATE_LIMITED"

    # Upstream generation provider – HTTP 503 / 500
    UPSTREAM_TRANSIENT = "ERR_UPSTREAM_TRANSIENT"
    UPSTREAM_FATAL = "ERR_UPSTREAM_FATAL"
    AI_PARSE = "ERR_AI_PARSE"

    # Server – HTTP 500
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.VALIDATION: 400,
    E.INVALID_PHASE: 400,
    E.UNAUTHENTICATED: 401,
    E.FORBIDDEN: 403,
    E.NOT_FOUND: 404,
    E.CONFLICT_STALE: 409,
    E.RATE_LIMITED: 429,
    E.UPSTREAM_TRANSIENT: 503,
    E.UPSTREAM_FATAL: 500,
    E.AI_PARSE: 500,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
    retryable: bool | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation for developers / UI.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict, optional
        Extra structured payload (field errors, phase mismatch, etc.).
    retryable : bool, optional
        When given, tells the client whether the same request may succeed
        if sent again later.

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` – drop-in for Flask views.
    """

    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details
    if retryable is not None:
        body["retryable"] = retryable

    return jsonify(body), http_status
