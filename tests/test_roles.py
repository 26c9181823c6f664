"""
Role resolution & capability matrix tests.

Tests cover:
  - normalize_role: canonical, legacy, unknown under both policies
  - is_internal / is_role_allowed
  - capabilities_for / has_capability
  - home_path routing
"""

import pytest

from advertis.services import roles
from advertis.services.roles import (
    ADMIN,
    CLIENT_RETAINER,
    CLIENT_STATIC,
    FREELANCE,
    OPERATOR,
    capabilities_for,
    has_capability,
    home_path,
    is_internal,
    is_role_allowed,
    normalize_role,
)


class TestNormalizeRole:
    @pytest.mark.parametrize("role", [ADMIN, OPERATOR, FREELANCE, CLIENT_RETAINER, CLIENT_STATIC])
    def test_canonical_passes_through(self, role):
        assert normalize_role(role) == role

    def test_legacy_values_are_mapped(self):
        assert normalize_role("user") == OPERATOR
        assert normalize_role("admin") == ADMIN

    def test_unknown_passes_through_by_default(self):
        assert normalize_role("SUPERVISOR") == "SUPERVISOR"

    def test_unknown_is_dropped_under_deny(self):
        assert normalize_role("SUPERVISOR", policy="deny") is None
        assert normalize_role("user", policy="deny") == OPERATOR

    def test_none_stays_none(self):
        assert normalize_role(None) is None

    def test_invalid_policy_rejected(self):
        with pytest.raises(ValueError):
            normalize_role(ADMIN, policy="lenient")


class TestClassification:
    def test_only_admin_and_operator_are_internal(self):
        assert is_internal(ADMIN)
        assert is_internal(OPERATOR)
        for role in (FREELANCE, CLIENT_RETAINER, CLIENT_STATIC, "SUPERVISOR", None):
            assert not is_internal(role)

    def test_is_role_allowed(self):
        assert is_role_allowed(OPERATOR, [ADMIN, OPERATOR])
        assert not is_role_allowed(FREELANCE, [ADMIN, OPERATOR])
        assert not is_role_allowed(None, [ADMIN])

    def test_legacy_values_are_normalised_before_checks(self):
        assert is_role_allowed("admin", [ADMIN])
        assert is_role_allowed("user", [OPERATOR])
        assert is_internal("user")
        assert is_internal("admin")
        assert has_capability("admin", roles.RESET_PHASE)
        assert home_path("user") == "/dashboard"


class TestCapabilities:
    def test_admin_holds_everything(self):
        assert capabilities_for(ADMIN) == roles.ALL_CAPABILITIES

    def test_operator_can_run_ai_but_not_reset(self):
        assert has_capability(OPERATOR, roles.MANAGE_STRATEGIES)
        assert has_capability(OPERATOR, roles.RUN_AI)
        assert not has_capability(OPERATOR, roles.RESET_PHASE)

    def test_client_roles(self):
        assert has_capability(CLIENT_RETAINER, roles.REQUEST_INTERVENTIONS)
        assert not has_capability(CLIENT_STATIC, roles.REQUEST_INTERVENTIONS)
        assert has_capability(CLIENT_STATIC, roles.VIEW_COCKPIT)

    def test_freelance(self):
        assert capabilities_for(FREELANCE) == {roles.VIEW_MISSIONS, roles.UPLOAD_DELIVERABLES}

    def test_unknown_role_gets_nothing(self):
        assert capabilities_for("SUPERVISOR") == frozenset()
        assert not has_capability(None, roles.RUN_AI)


class TestHomePath:
    def test_routing_table(self):
        assert home_path(ADMIN) == "/dashboard"
        assert home_path(FREELANCE) == "/my-missions"
        assert home_path(CLIENT_STATIC) == "/cockpit"

    def test_unknown_goes_to_login(self):
        assert home_path("SUPERVISOR") == "/login"
        assert home_path(None) == "/login"
