"""
ADVERTIS Strategy Platform
Session resolution & capability guards.

Authentication itself happens at the external identity provider. Requests
carry ``Authorization: Bearer <session token>``, an HS256 JWT whose payload
holds ``sub`` (user id) and ``role`` (raw role string). The token is decoded
on every request; the resolved identity lives on ``flask.g`` only.

Token payload:
{
    "sub": <user_id>,
    "role": "OPERATOR" | "user" | ...,
    "iat": <issued_at>,
    "exp": <expires_at>
}

Usage:
    @bp.route("/strategies/<strategy_id>")
    @require_auth
    @require_capability(MANAGE_STRATEGIES, mask_as_not_found=True)
    def get_strategy(strategy_id): ...
"""

import functools
import logging
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app, g, request

from advertis.core.exceptions import AuthenticationError, NotFoundError, PermissionDeniedError
from advertis.services.roles import capabilities_for, has_capability, normalize_role

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
DEFAULT_TTL = 3600


def _get_secret():
    return current_app.config.get("SESSION_TOKEN_SECRET") or current_app.config["SECRET_KEY"]


def issue_session_token(user_id: str, role: str, *, ttl: int | None = None) -> str:
    """Sign a session token. Used by development tooling and tests."""
    now = datetime.now(timezone.utc)
    ttl = ttl if ttl is not None else current_app.config.get("SESSION_TOKEN_TTL", DEFAULT_TTL)
    payload = {
        "sub": str(user_id),
        "role": role,
        "iat": now,
        "exp": now + timedelta(seconds=ttl),
    }
    return jwt.encode(payload, _get_secret(), algorithm=ALGORITHM)


def decode_session_token(token: str) -> dict:
    """
    Verify signature and expiry.

    Raises:
        AuthenticationError: expired, tampered or malformed token.
    """
    try:
        return jwt.decode(token, _get_secret(), algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Session expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid session token")


def resolve_session() -> tuple[str, str]:
    """Read the bearer token of the current request and return (user_id, role)."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        raise AuthenticationError("Authentication required")

    payload = decode_session_token(auth_header[7:])
    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid session token")

    policy = current_app.config.get("UNKNOWN_ROLE_POLICY", "passthrough")
    role = normalize_role(payload.get("role"), policy)
    if role is None:
        logger.warning("Rejected session with unrecognised role %r (policy=%s)",
                       payload.get("role"), policy)
        raise AuthenticationError("Unrecognised role")
    return str(user_id), role


def require_auth(f):
    """Decorator: resolve the session onto ``g.user_id`` / ``g.role`` / ``g.capabilities``."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        user_id, role = resolve_session()
        g.user_id = user_id
        g.role = role
        g.capabilities = capabilities_for(role)
        return f(*args, **kwargs)
    return decorated


def require_capability(capability: str, *, mask_as_not_found: bool = False, resource: str = "Strategy"):
    """
    Decorator: the session role must hold ``capability``.

    With ``mask_as_not_found`` the refusal looks exactly like a missing
    ``resource`` (404), for routes that target a specific record.
    """
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            role = getattr(g, "role", None)
            if not has_capability(role, capability):
                logger.warning(
                    "Access denied: role %r lacks '%s' on %s", role, capability, request.path,
                )
                if mask_as_not_found:
                    raise NotFoundError(resource=resource, resource_id=kwargs.get("strategy_id"))
                raise PermissionDeniedError(role, capability)
            return f(*args, **kwargs)
        return decorated
    return decorator
