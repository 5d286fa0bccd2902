"""Organizations API router."""

from typing import List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from konfi.core.security import Identity, RequirePermission, get_current_identity
from konfi.db.session import get_db
from konfi.schemas.schemas import (
    CreatedResponse, MessageResponse, OrganizationCreate, OrganizationOut,
    OrganizationStats, OrganizationUpdate,
)
from konfi.services.audit_service import audit_service
from konfi.services.organization_service import organization_service

router = APIRouter(prefix="/organizations", tags=["organizations"])


@router.get("", response_model=List[OrganizationOut])
async def list_organizations(
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequirePermission("admin.organizations.view")),
):
    return organization_service.list_organizations(db)


@router.get("/current", response_model=OrganizationOut)
async def current_organization(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """The caller's own organization."""
    org = organization_service.get_organization(db, identity, identity.organization_id)
    return organization_service.serialize(db, org)


@router.get("/{organization_id}", response_model=OrganizationOut)
async def get_organization(
    organization_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequirePermission("admin.organizations.view")),
):
    org = organization_service.get_organization(db, identity, organization_id)
    return organization_service.serialize(db, org)


@router.post("", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_organization(
    body: OrganizationCreate,
    request: Request,
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequirePermission("admin.organizations.create")),
):
    """Create an organization with system roles, default settings and its first org admin."""
    data = body.model_dump()
    result = organization_service.create_organization(db, **data)
    org = result["organization"]
    audit_service.log_from_request(
        db, request, identity,
        action="organization.created", resource_type="organization", resource_id=org.id,
        new_value={"slug": org.slug, "admin_username": body.admin_username},
    )
    return CreatedResponse(id=org.id, message="Organization created successfully")


@router.put("/{organization_id}", response_model=MessageResponse)
async def update_organization(
    organization_id: int,
    body: OrganizationUpdate,
    request: Request,
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequirePermission("admin.organizations.edit")),
):
    changes = body.model_dump(exclude_unset=True)
    organization_service.update_organization(db, identity, organization_id, changes)
    audit_service.log_from_request(
        db, request, identity,
        action="organization.updated", resource_type="organization", resource_id=organization_id,
        new_value=changes,
    )
    return MessageResponse(message="Organization updated successfully")


@router.delete("/{organization_id}", response_model=MessageResponse)
async def delete_organization(
    organization_id: int,
    request: Request,
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequirePermission("admin.organizations.delete")),
):
    organization_service.delete_organization(db, identity, organization_id)
    audit_service.log_from_request(
        db, request, identity,
        action="organization.deleted", resource_type="organization", resource_id=organization_id,
    )
    return MessageResponse(message="Organization deleted successfully")


@router.get("/{organization_id}/stats", response_model=OrganizationStats)
async def organization_stats(
    organization_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequirePermission("admin.organizations.view")),
):
    return organization_service.stats(db, identity, organization_id)
