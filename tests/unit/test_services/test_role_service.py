"""Tests for role management rules."""

import pytest

from konfi.core.exceptions import (
    AuthorizationError, ResourceConflictError, ResourceNotFoundError, ValidationError,
)
from konfi.core.security import Identity
from konfi.models import Permission, Role, RolePermission
from konfi.services.role_service import role_service


def identity_for(user):
    return Identity(
        id=user.id,
        organization_id=user.organization_id,
        username=user.username,
        display_name=user.display_name,
        role_id=user.role_id,
        role_name=user.role_name,
    )


@pytest.fixture
def helper_role(db_session, org_admin):
    return role_service.create_role(
        db_session, identity_for(org_admin), name="helper", display_name="Helfer:in",
    )


class TestSystemRoles:

    def test_new_organization_has_four_system_roles(self, roles):
        assert set(roles) == {"org_admin", "admin", "teamer", "konfi"}
        assert all(r.is_system_role for r in roles.values())

    def test_default_grants(self, db_session, roles):
        def granted(role):
            return {
                p.name
                for p in db_session.query(Permission)
                .join(RolePermission, RolePermission.permission_id == Permission.id)
                .filter(RolePermission.role_id == role.id)
            }

        assert "admin.users.delete" in granted(roles["admin"])
        assert "admin.roles.delete" not in granted(roles["admin"])
        assert "admin.users.delete" not in granted(roles["teamer"])
        assert granted(roles["konfi"]) == {"activities.view"}


class TestCreateRole:

    def test_only_org_admin_creates(self, db_session, admin_user):
        with pytest.raises(AuthorizationError):
            role_service.create_role(db_session, identity_for(admin_user), "helper", "Helfer")

    def test_name_required(self, db_session, org_admin):
        with pytest.raises(ValidationError):
            role_service.create_role(db_session, identity_for(org_admin), "", "Helfer")

    def test_duplicate_name(self, db_session, org_admin, helper_role):
        with pytest.raises(ResourceConflictError):
            role_service.create_role(db_session, identity_for(org_admin), "helper", "Noch einer")

    def test_system_role_name_taken(self, db_session, org_admin):
        with pytest.raises(ResourceConflictError):
            role_service.create_role(db_session, identity_for(org_admin), "teamer", "Teamer 2")

    def test_unknown_permission_rolls_back(self, db_session, org_admin):
        with pytest.raises(ValidationError):
            role_service.create_role(
                db_session, identity_for(org_admin), "helper", "Helfer",
                permissions=[{"permission_id": 99999, "granted": True}],
            )
        assert db_session.query(Role).filter(Role.name == "helper").first() is None


class TestUpdateRole:

    def test_konfi_role_is_immutable_even_for_org_admin(self, db_session, org_admin, roles):
        changes = (
            {"name": "kid"}, {"display_name": "Kid"}, {"description": None},
            {"is_active": False}, {"permissions": []},
        )
        for change in changes:
            with pytest.raises(AuthorizationError) as exc:
                role_service.update_role(db_session, identity_for(org_admin), roles["konfi"].id, change)
            assert exc.value.message == "The konfi role cannot be modified"

    def test_system_role_cannot_be_renamed(self, db_session, org_admin, roles):
        with pytest.raises(ValidationError):
            role_service.update_role(db_session, identity_for(org_admin), roles["teamer"].id, {"name": "mentor"})

    def test_org_admin_edits_system_role_display_name(self, db_session, org_admin, roles):
        role = role_service.update_role(
            db_session, identity_for(org_admin), roles["teamer"].id, {"display_name": "Mentor:in"}
        )
        assert role.display_name == "Mentor:in"
        assert role.name == "teamer"

    def test_admin_cannot_edit_admin_role(self, db_session, admin_user, roles):
        with pytest.raises(AuthorizationError):
            role_service.update_role(db_session, identity_for(admin_user), roles["admin"].id, {"is_active": True})

    def test_admin_display_name_change_on_system_role_is_ignored(self, db_session, admin_user, roles):
        role = role_service.update_role(
            db_session, identity_for(admin_user), roles["teamer"].id, {"display_name": "Mentor:in"}
        )
        assert role.display_name == "Teamer:in"

    def test_teamer_cannot_edit_roles(self, db_session, teamer_user, roles):
        with pytest.raises(AuthorizationError):
            role_service.update_role(db_session, identity_for(teamer_user), roles["konfi"].id, {"is_active": True})

    def test_other_org_role_is_404(self, db_session, org_admin, other_org):
        foreign = db_session.query(Role).filter(Role.organization_id == other_org.id).first()
        with pytest.raises(ResourceNotFoundError):
            role_service.update_role(db_session, identity_for(org_admin), foreign.id, {"is_active": False})

    def test_custom_role_rename(self, db_session, org_admin, helper_role):
        role = role_service.update_role(db_session, identity_for(org_admin), helper_role.id, {"name": "mentor"})
        assert role.name == "mentor"


class TestDeleteRole:

    def test_konfi_role_cannot_be_deleted(self, db_session, org_admin, roles):
        with pytest.raises(ValidationError) as exc:
            role_service.delete_role(db_session, identity_for(org_admin), roles["konfi"].id)
        assert exc.value.message == "Cannot delete system roles"

    def test_role_in_use_reports_count(self, db_session, org_admin, helper_role, make_user):
        make_user("h1", "helper")
        make_user("h2", "helper")
        with pytest.raises(ResourceConflictError) as exc:
            role_service.delete_role(db_session, identity_for(org_admin), helper_role.id)
        assert "2" in exc.value.message

    def test_admin_cannot_delete(self, db_session, admin_user, helper_role):
        with pytest.raises(AuthorizationError):
            role_service.delete_role(db_session, identity_for(admin_user), helper_role.id)

    def test_delete_removes_grants(self, db_session, org_admin):
        perm = db_session.query(Permission).filter(Permission.name == "activities.view").one()
        role = role_service.create_role(
            db_session, identity_for(org_admin), "reader", "Leser",
            permissions=[{"permission_id": perm.id, "granted": True}],
        )
        role_id = role.id

        role_service.delete_role(db_session, identity_for(org_admin), role_id)

        assert db_session.query(Role).filter(Role.id == role_id).first() is None
        assert db_session.query(RolePermission).filter(RolePermission.role_id == role_id).count() == 0


class TestListing:

    def test_can_edit_flags_for_admin(self, db_session, admin_user):
        listed = {r["name"]: r for r in role_service.list_roles(db_session, identity_for(admin_user))}
        assert listed["org_admin"]["can_edit"] is False
        assert listed["admin"]["can_edit"] is False
        assert listed["teamer"]["can_edit"] is True
        assert listed["konfi"]["can_edit"] is True
        assert listed["admin"]["user_count"] == 1

    def test_system_roles_first_in_hierarchy_order(self, db_session, org_admin, helper_role):
        names = [r["name"] for r in role_service.list_roles(db_session, identity_for(org_admin))]
        assert names == ["org_admin", "admin", "teamer", "konfi", "helper"]

    def test_assignable_for_teamer(self, db_session, teamer_user, helper_role):
        names = [r["name"] for r in role_service.assignable_roles(db_session, identity_for(teamer_user))]
        assert names == ["konfi", "helper"]
