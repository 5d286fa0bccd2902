"""Tests for the role hierarchy table and predicates."""

from types import SimpleNamespace

import pytest

from konfi.core.hierarchy import (
    ROLE_HIERARCHY,
    can_create_role,
    can_manage_role,
    filter_roles_by_hierarchy,
    filter_users_by_hierarchy,
    get_role_level,
    has_minimum_level,
)

NAMED = ["org_admin", "admin", "teamer", "konfi"]

# (actor, target) -> expected
MANAGE_TABLE = {
    ("org_admin", "org_admin"): True,
    ("org_admin", "admin"): True,
    ("org_admin", "teamer"): True,
    ("org_admin", "konfi"): True,
    ("admin", "org_admin"): False,
    ("admin", "admin"): False,
    ("admin", "teamer"): True,
    ("admin", "konfi"): True,
    ("teamer", "org_admin"): False,
    ("teamer", "admin"): False,
    ("teamer", "teamer"): False,
    ("teamer", "konfi"): True,
    ("konfi", "org_admin"): False,
    ("konfi", "admin"): False,
    ("konfi", "teamer"): False,
    ("konfi", "konfi"): False,
}


class TestRoleLevels:
    """Level lookups."""

    def test_levels(self):
        assert get_role_level("org_admin") == 4
        assert get_role_level("admin") == 3
        assert get_role_level("teamer") == 2
        assert get_role_level("konfi") == 1

    def test_unknown_and_missing_roles_are_level_zero(self):
        assert get_role_level("helper") == 0
        assert get_role_level("") == 0
        assert get_role_level(None) == 0

    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            ROLE_HIERARCHY["helper"] = 5

    def test_has_minimum_level(self):
        assert has_minimum_level("admin", 3)
        assert has_minimum_level("org_admin", 3)
        assert not has_minimum_level("teamer", 3)
        assert has_minimum_level("helper", 0)


class TestCanManageRole:
    """The full predicate table plus the custom-role cases."""

    @pytest.mark.parametrize("actor,target", list(MANAGE_TABLE))
    def test_named_roles(self, actor, target):
        assert can_manage_role(actor, target) is MANAGE_TABLE[(actor, target)]

    def test_org_admin_manages_custom_roles(self):
        assert can_manage_role("org_admin", "helper")

    def test_admin_and_teamer_manage_custom_roles(self):
        assert can_manage_role("admin", "helper")
        assert can_manage_role("teamer", "helper")

    def test_custom_roles_cannot_manage_each_other(self):
        assert not can_manage_role("helper", "helper")
        assert not can_manage_role("helper", "reader")

    def test_custom_role_cannot_manage_konfi(self):
        assert not can_manage_role("helper", "konfi")

    def test_konfi_manages_custom_role_by_level(self):
        # level 1 > level 0
        assert can_manage_role("konfi", "helper")

    def test_missing_actor_role(self):
        assert not can_manage_role(None, "konfi")
        assert not can_manage_role(None, None)

    def test_idempotent(self):
        for actor, target in MANAGE_TABLE:
            first = can_manage_role(actor, target)
            assert can_manage_role(actor, target) is first


class TestCanCreateRole:

    @pytest.mark.parametrize("actor", NAMED + ["helper", None])
    @pytest.mark.parametrize("target", NAMED + ["helper"])
    def test_same_as_manage(self, actor, target):
        assert can_create_role(actor, target) == can_manage_role(actor, target)


class TestFilters:
    """List filtering keeps what the actor may manage and never mutates input."""

    def test_filter_users_with_mappings(self):
        users = [
            {"id": 1, "role_name": "org_admin"},
            {"id": 2, "role_name": "admin"},
            {"id": 3, "role_name": "teamer"},
            {"id": 4, "role_name": "konfi"},
        ]
        snapshot = [dict(u) for u in users]

        kept = filter_users_by_hierarchy(users, "admin")

        assert [u["id"] for u in kept] == [3, 4]
        assert users == snapshot

    def test_filter_users_with_objects(self):
        users = [SimpleNamespace(id=1, role_name="teamer"), SimpleNamespace(id=2, role_name="konfi")]
        kept = filter_users_by_hierarchy(users, "teamer")
        assert [u.id for u in kept] == [2]

    def test_filter_roles(self):
        roles = [{"name": n} for n in NAMED + ["helper"]]
        assert [r["name"] for r in filter_roles_by_hierarchy(roles, "org_admin")] == NAMED + ["helper"]
        assert [r["name"] for r in filter_roles_by_hierarchy(roles, "teamer")] == ["konfi", "helper"]
        assert filter_roles_by_hierarchy(roles, "helper") == []

    def test_filter_returns_new_list(self):
        roles = [{"name": "konfi"}]
        kept = filter_roles_by_hierarchy(roles, "org_admin")
        assert kept == roles
        assert kept is not roles
