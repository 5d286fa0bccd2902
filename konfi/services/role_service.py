"""Role service: organization roles, their grants and the permission catalog."""

from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from konfi.core.exceptions import (
    AuthorizationError, ResourceConflictError, ResourceNotFoundError, ValidationError,
)
from konfi.core.hierarchy import (
    ADMIN, KONFI, ORG_ADMIN, SYSTEM_ROLES, TEAMER,
    filter_roles_by_hierarchy, get_role_level,
)
from konfi.core.permissions import DEFAULT_ROLES
from konfi.core.security import Identity
from konfi.models.role import Permission, Role, RolePermission
from konfi.models.user import User


class RoleService:
    """Role CRUD scoped to the actor's organization."""

    @staticmethod
    def create_system_roles(db: Session, organization_id: int) -> Dict[str, Role]:
        """Add the four system roles with their default grants. Flushes, does not commit."""
        catalog = {p.name: p.id for p in db.query(Permission).all()}
        roles = {}
        for role_def in DEFAULT_ROLES:
            role = Role(
                organization_id=organization_id,
                name=role_def["name"],
                display_name=role_def["display_name"],
                description=role_def["description"],
                is_system_role=True,
                is_active=True,
            )
            db.add(role)
            db.flush()
            for perm_name in role_def["permissions"]:
                if perm_name in catalog:
                    db.add(RolePermission(role_id=role.id, permission_id=catalog[perm_name], granted=True))
            roles[role.name] = role
        db.flush()
        return roles

    @staticmethod
    def _get_org_role(db: Session, actor: Identity, role_id: int) -> Role:
        role = (
            db.query(Role)
            .filter(Role.id == role_id, Role.organization_id == actor.organization_id)
            .first()
        )
        if not role:
            raise ResourceNotFoundError("Role not found in this organization")
        return role

    @staticmethod
    def _user_counts(db: Session, role_ids: Iterable[int]) -> Dict[int, int]:
        role_ids = list(role_ids)
        if not role_ids:
            return {}
        rows = (
            db.query(User.role_id, func.count(User.id))
            .filter(User.role_id.in_(role_ids), User.is_active.is_(True))
            .group_by(User.role_id)
            .all()
        )
        return dict(rows)

    @staticmethod
    def _permission_counts(db: Session, role_ids: Iterable[int]) -> Dict[int, int]:
        role_ids = list(role_ids)
        if not role_ids:
            return {}
        rows = (
            db.query(RolePermission.role_id, func.count(RolePermission.id))
            .filter(RolePermission.role_id.in_(role_ids), RolePermission.granted.is_(True))
            .group_by(RolePermission.role_id)
            .all()
        )
        return dict(rows)

    @staticmethod
    def _serialize(role: Role, user_count: int, permission_count: int, can_edit: bool) -> Dict[str, Any]:
        return {
            "id": role.id,
            "name": role.name,
            "display_name": role.display_name,
            "description": role.description,
            "is_system_role": role.is_system_role,
            "is_active": role.is_active,
            "user_count": user_count,
            "permission_count": permission_count,
            "can_edit": can_edit,
            "created_at": role.created_at,
        }

    @staticmethod
    def list_roles(db: Session, actor: Identity) -> List[Dict[str, Any]]:
        """All organization roles, system roles first in hierarchy order, each with ``can_edit``."""
        roles = db.query(Role).filter(Role.organization_id == actor.organization_id).all()
        roles.sort(key=lambda r: (not r.is_system_role, -get_role_level(r.name), r.display_name))

        editable = {r.id for r in filter_roles_by_hierarchy(roles, actor.role_name)}
        ids = [r.id for r in roles]
        user_counts = RoleService._user_counts(db, ids)
        perm_counts = RoleService._permission_counts(db, ids)
        return [
            RoleService._serialize(r, user_counts.get(r.id, 0), perm_counts.get(r.id, 0), r.id in editable)
            for r in roles
        ]

    @staticmethod
    def assignable_roles(db: Session, actor: Identity) -> List[Dict[str, Any]]:
        """Active roles the actor may hand out to users."""
        roles = (
            db.query(Role)
            .filter(Role.organization_id == actor.organization_id, Role.is_active.is_(True))
            .all()
        )
        roles.sort(key=lambda r: (-get_role_level(r.name), r.display_name))
        return [
            {"id": r.id, "name": r.name, "display_name": r.display_name, "is_system_role": r.is_system_role}
            for r in filter_roles_by_hierarchy(roles, actor.role_name)
        ]

    @staticmethod
    def get_role(db: Session, actor: Identity, role_id: int) -> Dict[str, Any]:
        """Role detail with the full permission catalog and a ``granted`` flag per entry."""
        role = RoleService._get_org_role(db, actor, role_id)
        granted = {
            rp.permission_id
            for rp in db.query(RolePermission)
            .filter(RolePermission.role_id == role.id, RolePermission.granted.is_(True))
            .all()
        }
        permissions = [
            {
                "id": p.id,
                "name": p.name,
                "display_name": p.display_name,
                "description": p.description,
                "module": p.module,
                "is_system_permission": p.is_system_permission,
                "granted": p.id in granted,
            }
            for p in db.query(Permission).order_by(Permission.module, Permission.name).all()
        ]
        data = RoleService._serialize(
            role,
            RoleService._user_counts(db, [role.id]).get(role.id, 0),
            len(granted),
            bool(filter_roles_by_hierarchy([role], actor.role_name)),
        )
        data["permissions"] = permissions
        return data

    @staticmethod
    def _replace_grants(db: Session, role_id: int, grants: List[Dict[str, Any]]) -> None:
        ids = [g["permission_id"] for g in grants]
        known = {pid for (pid,) in db.query(Permission.id).filter(Permission.id.in_(ids)).all()} if ids else set()
        unknown = sorted(set(ids) - known)
        if unknown:
            raise ValidationError(f"Unknown permission ids: {unknown}")

        db.query(RolePermission).filter(RolePermission.role_id == role_id).delete(synchronize_session=False)
        seen = set()
        for g in grants:
            if g["permission_id"] in seen:
                continue
            seen.add(g["permission_id"])
            db.add(RolePermission(role_id=role_id, permission_id=g["permission_id"], granted=g.get("granted", True)))

    @staticmethod
    def create_role(
        db: Session,
        actor: Identity,
        name: Optional[str],
        display_name: Optional[str],
        description: Optional[str] = None,
        permissions: Optional[List[Dict[str, Any]]] = None,
    ) -> Role:
        """Create a custom role. Only org admins may do this."""
        if actor.role_name != ORG_ADMIN:
            raise AuthorizationError("Only organization admins can create roles")
        if not name or not display_name:
            raise ValidationError("Name and display name are required")
        name = name.strip()
        if name in SYSTEM_ROLES:
            raise ResourceConflictError(f"Role '{name}' already exists in this organization")

        existing = (
            db.query(Role)
            .filter(Role.organization_id == actor.organization_id, Role.name == name)
            .first()
        )
        if existing:
            raise ResourceConflictError(f"Role '{name}' already exists in this organization")

        try:
            role = Role(
                organization_id=actor.organization_id,
                name=name,
                display_name=display_name,
                description=description,
                is_system_role=False,
                is_active=True,
            )
            db.add(role)
            db.flush()
            RoleService._replace_grants(db, role.id, permissions or [])
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(role)
        return role

    @staticmethod
    def update_role(db: Session, actor: Identity, role_id: int, changes: Dict[str, Any]) -> Role:
        """Apply ``changes`` (only the keys the client sent) to a role.

        Raises:
            ResourceNotFoundError: role not in the actor's organization.
            ValidationError: a system role renamed.
            AuthorizationError: the konfi role, a role that outranks the actor,
                or an actor holding a teamer or custom role.
        """
        role = RoleService._get_org_role(db, actor, role_id)

        if role.name == KONFI:
            raise AuthorizationError("The konfi role cannot be modified")

        if actor.role_name == ADMIN:
            if role.name in (ADMIN, ORG_ADMIN):
                raise AuthorizationError(f"You cannot edit the role '{role.name}'")
        elif actor.role_name == TEAMER:
            raise AuthorizationError("You do not have permission to edit roles")
        elif actor.role_name != ORG_ADMIN:
            raise AuthorizationError("Insufficient permissions to edit this role")

        new_name = changes.get("name")
        if new_name is not None and new_name != role.name:
            if role.is_system_role:
                raise ValidationError("System roles cannot be renamed")
            clash = (
                db.query(Role)
                .filter(
                    Role.organization_id == actor.organization_id,
                    Role.name == new_name,
                    Role.id != role.id,
                )
                .first()
            )
            if clash or new_name in SYSTEM_ROLES:
                raise ResourceConflictError("Role name already exists in this organization")

        can_edit_basic_fields = not role.is_system_role or actor.role_name == ORG_ADMIN

        try:
            if can_edit_basic_fields:
                if new_name:
                    role.name = new_name
                if changes.get("display_name"):
                    role.display_name = changes["display_name"]
                if "description" in changes:
                    role.description = changes["description"]
            if changes.get("is_active") is not None:
                role.is_active = changes["is_active"]
            if changes.get("permissions") is not None:
                RoleService._replace_grants(db, role.id, changes["permissions"])
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(role)
        return role

    @staticmethod
    def delete_role(db: Session, actor: Identity, role_id: int) -> Role:
        """Delete a custom role that nobody holds, together with its grants."""
        role = RoleService._get_org_role(db, actor, role_id)
        if role.is_system_role:
            raise ValidationError("Cannot delete system roles")
        if actor.role_name != ORG_ADMIN:
            raise AuthorizationError("Only organization admins can delete roles")

        user_count = db.query(func.count(User.id)).filter(User.role_id == role.id).scalar()
        if user_count:
            raise ResourceConflictError(
                f"Cannot delete role with {user_count} assigned users. Reassign users first."
            )

        try:
            db.query(RolePermission).filter(RolePermission.role_id == role.id).delete(synchronize_session=False)
            db.delete(role)
            db.commit()
        except Exception:
            db.rollback()
            raise
        return role

    @staticmethod
    def set_role_permissions(db: Session, actor: Identity, role_id: int, permission_ids: List[int]) -> Role:
        """Replace a role's grants with exactly ``permission_ids``."""
        role = RoleService._get_org_role(db, actor, role_id)
        if role.name == KONFI:
            raise AuthorizationError("The konfi role cannot be modified")
        if not filter_roles_by_hierarchy([role], actor.role_name):
            raise AuthorizationError(f"You cannot change permissions of the role '{role.name}'")
        try:
            RoleService._replace_grants(db, role.id, [{"permission_id": pid} for pid in permission_ids])
            db.commit()
        except Exception:
            db.rollback()
            raise
        return role

    @staticmethod
    def list_permissions(db: Session) -> List[Permission]:
        return db.query(Permission).order_by(Permission.module, Permission.name).all()

    @staticmethod
    def grouped_permissions(db: Session) -> Dict[str, List[Permission]]:
        grouped: Dict[str, List[Permission]] = OrderedDict()
        for p in RoleService.list_permissions(db):
            grouped.setdefault(p.module, []).append(p)
        return grouped


role_service = RoleService()
