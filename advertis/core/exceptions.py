"""
Platform-wide exception hierarchy.

Services raise these types; ``advertis.blueprints.register_error_handlers``
maps them to HTTP responses once, so every endpoint reports the same
status codes for the same failure.

Usage:
    from advertis.core.exceptions import NotFoundError, InvalidPhaseError

    raise NotFoundError(resource="Strategy", resource_id=sid)
    raise InvalidPhaseError(required_phase="market-study", actual_phase=s.phase)
"""


class AdvertisError(Exception):
    """Base class. ``http_status`` and ``retryable`` drive the API envelope."""

    http_status = 500
    retryable = False
    code = "ERR_INTERNAL"


class NotFoundError(AdvertisError):
    """Raised when a requested resource does not exist within the caller's scope.

    Security note: Used for BOTH genuinely missing records AND ownership
    mismatches. A 403 would confirm the resource exists; a 404 does not.

    Args:
        resource: Human-readable entity name (e.g. "Strategy", "MarketStudy").
        resource_id: The key that was looked up. Included in logs, not in HTTP response.
    """

    http_status = 404
    code = "ERR_NOT_FOUND"

    def __init__(self, resource: str, resource_id: str | int | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)

    @property
    def public_message(self) -> str:
        return f"{self.resource} not found"


class ValidationError(AdvertisError):
    """Raised when input is malformed, too short, or otherwise invalid.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown. Keys are field names.
    """

    http_status = 400
    code = "ERR_VALIDATION"

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class AuthenticationError(AdvertisError):
    """Raised when no valid session token accompanies the request."""

    http_status = 401
    code = "ERR_UNAUTHENTICATED"


class PermissionDeniedError(AdvertisError):
    """Raised when the caller's role lacks a capability on a route with no target record."""

    http_status = 403
    code = "ERR_FORBIDDEN"

    def __init__(self, role: str | None, capability: str) -> None:
        self.role = role
        self.capability = capability
        super().__init__(f"Role {role!r} lacks capability '{capability}'")


class InvalidPhaseError(AdvertisError):
    """Raised when a phase transition precondition does not hold.

    Unless a message is given, it states the required and the actual phase.
    """

    http_status = 400
    code = "ERR_INVALID_PHASE"

    def __init__(self, required_phase: str, actual_phase: str, action: str | None = None,
                 message: str | None = None) -> None:
        self.required_phase = required_phase
        self.actual_phase = actual_phase
        self.action = action
        if message is None:
            message = f"Strategy must be in phase '{required_phase}'"
            if action:
                message += f" to {action}"
            message += f"; current phase is '{actual_phase}'"
        super().__init__(message)


class ConflictError(AdvertisError):
    """Raised when a write is based on a stale version of the record.

    Args:
        resource: Entity name.
        expected_version: Version the caller read.
        actual_version: Version found at write time.
    """

    http_status = 409
    code = "ERR_CONFLICT_STALE"

    def __init__(self, resource: str, expected_version: int, actual_version: int) -> None:
        self.resource = resource
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"{resource} was modified concurrently "
            f"(expected version {expected_version}, found {actual_version}). Reload and retry."
        )


class AIResponseParseError(AdvertisError):
    """Raised when model output cannot be parsed as the expected JSON object.

    Fatal: the core never retries it. ``raw_snippet`` holds a truncated copy
    of the output for logs only; it is never sent to the caller.
    """

    http_status = 500
    code = "ERR_AI_PARSE"

    def __init__(self, purpose: str, raw_snippet: str = "") -> None:
        self.purpose = purpose
        self.raw_snippet = raw_snippet
        super().__init__(f"Failed to parse AI response ({purpose})")


class UpstreamTransientError(AdvertisError):
    """Generation provider is overloaded or asked us to try again later."""

    http_status = 503
    retryable = True
    code = "ERR_UPSTREAM_TRANSIENT"


class UpstreamFatalError(AdvertisError):
    """Generation provider failed in a way retrying will not fix."""

    http_status = 500
    code = "ERR_UPSTREAM_FATAL"
