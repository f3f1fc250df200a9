"""
Tests for the Role Catalogue — scope lookup, ranking and external mapping.
"""

import pytest

from analytics.roles import (
    DEFAULT_EXTERNAL_ROLE,
    VALID_ROLES,
    get_assignable_roles,
    get_role_scope,
    has_higher_or_equal_role,
    is_valid_role,
    map_external_role,
    resolve_role,
)


class TestRoleScope:
    @pytest.mark.parametrize("role", ["zonal", "regional", "national"])
    def test_hierarchy_roles_scope_to_themselves(self, role):
        assert get_role_scope(role) == role

    @pytest.mark.parametrize("role", ["facility_officer", "facility_manager", "data_analyst", "viewer", "qa"])
    def test_other_roles_are_facility_scoped(self, role):
        assert get_role_scope(role) == "facility"

    def test_unknown_role_is_facility_scoped(self):
        assert get_role_scope("superuser") == "facility"

    @pytest.mark.parametrize(
        ("auth_role", "scope"),
        [("admin", "national"), ("manager", "facility"), ("analyst", "facility"), (None, "facility")],
    )
    def test_auth_provider_roles_are_mapped_first(self, auth_role, scope):
        assert get_role_scope(auth_role) == scope

    def test_resolve_role(self):
        assert resolve_role("zonal") == "zonal"
        assert resolve_role("data_analyst") == "data_analyst"
        assert resolve_role("admin") == "national"
        assert resolve_role("janitor") == DEFAULT_EXTERNAL_ROLE


class TestRoleRanking:
    def test_valid_roles(self):
        assert is_valid_role("national")
        assert not is_valid_role("admin")
        assert len(VALID_ROLES) == 11

    def test_higher_or_equal(self):
        assert has_higher_or_equal_role("national", "zonal")
        assert has_higher_or_equal_role("zonal", "zonal")
        assert not has_higher_or_equal_role("viewer", "facility_officer")

    def test_assignable_roles_are_strictly_lower(self):
        assignable = get_assignable_roles("zonal")
        assert "zonal" not in assignable
        assert "regional" not in assignable
        assert "facility_manager" in assignable
        assert get_assignable_roles("viewer") == []


class TestExternalRoleMapping:
    def test_known_roles(self):
        assert map_external_role("admin") == "national"
        assert map_external_role("manager") == "facility_manager"
        assert map_external_role("analyst") == "data_analyst"
        assert map_external_role("regional") == "regional"

    def test_missing_role_is_viewer(self):
        assert map_external_role(None) == "viewer"
        assert map_external_role("") == "viewer"

    def test_unknown_role_falls_back(self):
        assert map_external_role("janitor") == DEFAULT_EXTERNAL_ROLE
