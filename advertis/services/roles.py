"""
Role resolution and capability matrix.

Roles are derived from the session token on every request and never cached.
All functions here are pure so they can be called from services and tests
without a live request.

Role set:
    ADMIN, OPERATOR           internal (see raw labels, manage strategies)
    FREELANCE                 external contributor
    CLIENT_RETAINER           client with an active retainer
    CLIENT_STATIC             client with read-only deliverables

Legacy values ("user", "admin") are normalised to OPERATOR / ADMIN.
"""

ADMIN = "ADMIN"
OPERATOR = "OPERATOR"
FREELANCE = "FREELANCE"
CLIENT_RETAINER = "CLIENT_RETAINER"
CLIENT_STATIC = "CLIENT_STATIC"

ALL_ROLES = frozenset({ADMIN, OPERATOR, FREELANCE, CLIENT_RETAINER, CLIENT_STATIC})
INTERNAL_ROLES = frozenset({ADMIN, OPERATOR})

LEGACY_ROLE_MAP = {
    "user": OPERATOR,
    "admin": ADMIN,
}

UNKNOWN_ROLE_POLICIES = ("passthrough", "deny")

# ── Capabilities ─────────────────────────────────────────────────────────────

MANAGE_STRATEGIES = "manage_strategies"
RUN_AI = "run_ai"
VIEW_INTERNAL_LABELS = "view_internal_labels"
MANAGE_MISSIONS = "manage_missions"
RESET_PHASE = "reset_phase"
VIEW_MISSIONS = "view_missions"
UPLOAD_DELIVERABLES = "upload_deliverables"
VIEW_COCKPIT = "view_cockpit"
REQUEST_INTERVENTIONS = "request_interventions"
VIEW_DOCUMENTS = "view_documents"

ALL_CAPABILITIES = frozenset({
    MANAGE_STRATEGIES, RUN_AI, VIEW_INTERNAL_LABELS, MANAGE_MISSIONS, RESET_PHASE,
    VIEW_MISSIONS, UPLOAD_DELIVERABLES, VIEW_COCKPIT, REQUEST_INTERVENTIONS, VIEW_DOCUMENTS,
})

ROLE_CAPABILITIES: dict[str, frozenset] = {
    ADMIN: ALL_CAPABILITIES,
    OPERATOR: frozenset({MANAGE_STRATEGIES, RUN_AI, VIEW_INTERNAL_LABELS, MANAGE_MISSIONS}),
    FREELANCE: frozenset({VIEW_MISSIONS, UPLOAD_DELIVERABLES}),
    CLIENT_RETAINER: frozenset({VIEW_COCKPIT, REQUEST_INTERVENTIONS, VIEW_DOCUMENTS}),
    CLIENT_STATIC: frozenset({VIEW_COCKPIT, VIEW_DOCUMENTS}),
}

HOME_PATHS = {
    ADMIN: "/dashboard",
    OPERATOR: "/dashboard",
    FREELANCE: "/my-missions",
    CLIENT_RETAINER: "/cockpit",
    CLIENT_STATIC: "/cockpit",
}
DEFAULT_HOME_PATH = "/login"


def normalize_role(raw: str | None, policy: str = "passthrough") -> str | None:
    """
    Map a raw role string to a canonical role.

    Canonical values come back unchanged and legacy values are translated.
    Anything else is returned as-is under the ``passthrough`` policy, or as
    ``None`` under ``deny``.
    """
    if policy not in UNKNOWN_ROLE_POLICIES:
        raise ValueError(f"Unknown role policy: {policy!r}")
    if raw is None:
        return None
    if raw in ALL_ROLES:
        return raw
    if raw in LEGACY_ROLE_MAP:
        return LEGACY_ROLE_MAP[raw]
    if policy == "deny":
        return None
    return raw


def is_role_allowed(role: str | None, allowed_roles) -> bool:
    role = normalize_role(role)
    return role is not None and role in allowed_roles


def is_internal(role: str | None) -> bool:
    return normalize_role(role) in INTERNAL_ROLES


def capabilities_for(role: str | None) -> frozenset:
    """Unrecognised roles get no capabilities. Legacy values are normalised first."""
    return ROLE_CAPABILITIES.get(normalize_role(role), frozenset())


def has_capability(role: str | None, capability: str) -> bool:
    return capability in capabilities_for(role)


def home_path(role: str | None) -> str:
    return HOME_PATHS.get(normalize_role(role), DEFAULT_HOME_PATH)
