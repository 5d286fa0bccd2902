"""Roles API router."""

from typing import List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from konfi.core.security import Identity, RequirePermission
from konfi.db.session import get_db
from konfi.schemas.schemas import (
    CreatedResponse, MessageResponse, RoleCreate, RoleDetail, RoleOut,
    RolePermissionsUpdate, RoleUpdate,
)
from konfi.services.audit_service import audit_service
from konfi.services.role_service import role_service

router = APIRouter(prefix="/roles", tags=["roles"])


@router.get("", response_model=List[RoleOut])
async def list_roles(
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequirePermission("admin.roles.view")),
):
    """Organization roles with user and permission counts."""
    return role_service.list_roles(db, identity)


@router.get("/assignable")
async def assignable_roles(
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequirePermission("admin.users.view")),
):
    """Roles the caller may assign when creating or editing users."""
    return role_service.assignable_roles(db, identity)


@router.get("/{role_id}", response_model=RoleDetail)
async def get_role(
    role_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequirePermission("admin.roles.view")),
):
    return role_service.get_role(db, identity, role_id)


@router.post("", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_role(
    body: RoleCreate,
    request: Request,
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequirePermission("admin.roles.create")),
):
    role = role_service.create_role(
        db, identity,
        name=body.name,
        display_name=body.display_name,
        description=body.description,
        permissions=[p.model_dump() for p in body.permissions],
    )
    audit_service.log_from_request(
        db, request, identity,
        action="role.created", resource_type="role", resource_id=role.id,
        new_value={"name": role.name, "permissions": len(body.permissions)},
    )
    return CreatedResponse(id=role.id, message="Role created successfully")


@router.put("/{role_id}", response_model=MessageResponse)
async def update_role(
    role_id: int,
    body: RoleUpdate,
    request: Request,
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequirePermission("admin.roles.edit")),
):
    changes = body.model_dump(exclude_unset=True)
    role_service.update_role(db, identity, role_id, changes)
    audit_service.log_from_request(
        db, request, identity,
        action="role.updated", resource_type="role", resource_id=role_id,
        new_value=changes,
    )
    return MessageResponse(message="Role updated successfully")


@router.delete("/{role_id}", response_model=MessageResponse)
async def delete_role(
    role_id: int,
    request: Request,
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequirePermission("admin.roles.delete")),
):
    role_service.delete_role(db, identity, role_id)
    audit_service.log_from_request(
        db, request, identity,
        action="role.deleted", resource_type="role", resource_id=role_id,
    )
    return MessageResponse(message="Role deleted successfully")


@router.post("/{role_id}/permissions", response_model=MessageResponse)
async def set_role_permissions(
    role_id: int,
    body: RolePermissionsUpdate,
    request: Request,
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequirePermission("admin.permissions.manage")),
):
    """Replace the role's grants with exactly the given permission ids."""
    role_service.set_role_permissions(db, identity, role_id, body.permission_ids)
    audit_service.log_from_request(
        db, request, identity,
        action="role.permissions_replaced", resource_type="role", resource_id=role_id,
        new_value={"permission_ids": body.permission_ids},
    )
    return MessageResponse(message="Role permissions updated successfully")
