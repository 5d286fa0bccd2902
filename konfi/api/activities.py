"""Activities API router: catalog, point awards and konfi totals."""

from typing import List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from konfi.core.exceptions import AuthorizationError
from konfi.core.security import Identity, RequirePermission, get_current_identity
from konfi.db.session import get_db
from konfi.schemas.schemas import (
    ActivityAssign, ActivityAssigned, ActivityCreate, ActivityOut, ActivityUpdate,
    KonfiPoints, MessageResponse,
)
from konfi.services.activity_service import activity_service
from konfi.services.audit_service import audit_service

router = APIRouter(prefix="/activities", tags=["activities"])


@router.get("", response_model=List[ActivityOut])
async def list_activities(
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequirePermission("activities.view")),
):
    return activity_service.list_activities(db, identity.organization_id)


@router.post("", response_model=ActivityOut, status_code=status.HTTP_201_CREATED)
async def create_activity(
    body: ActivityCreate,
    request: Request,
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequirePermission("activities.create")),
):
    activity = activity_service.create_activity(
        db, identity.organization_id, body.name, body.points, body.type, body.category,
    )
    audit_service.log_from_request(
        db, request, identity,
        action="activity.created", resource_type="activity", resource_id=activity.id,
        new_value=body.model_dump(mode="json"),
    )
    return activity


@router.put("/{activity_id}", response_model=ActivityOut)
async def update_activity(
    activity_id: int,
    body: ActivityUpdate,
    request: Request,
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequirePermission("activities.edit")),
):
    changes = body.model_dump(exclude_unset=True)
    activity = activity_service.update_activity(db, identity.organization_id, activity_id, changes)
    audit_service.log_from_request(
        db, request, identity,
        action="activity.updated", resource_type="activity", resource_id=activity_id,
        new_value=body.model_dump(mode="json", exclude_unset=True),
    )
    return activity


@router.delete("/{activity_id}", response_model=MessageResponse)
async def delete_activity(
    activity_id: int,
    request: Request,
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequirePermission("activities.delete")),
):
    activity_service.delete_activity(db, identity.organization_id, activity_id)
    audit_service.log_from_request(
        db, request, identity,
        action="activity.deleted", resource_type="activity", resource_id=activity_id,
    )
    return MessageResponse(message="Activity deleted successfully")


@router.post("/{activity_id}/assign", response_model=ActivityAssigned, status_code=status.HTTP_201_CREATED)
async def assign_activity(
    activity_id: int,
    body: ActivityAssign,
    request: Request,
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequirePermission("konfis.assign_points")),
):
    """Award an activity's points to a konfi. The response names newly earned badges."""
    entry, awarded = activity_service.assign_activity(
        db, identity, activity_id, body.konfi_id, body.completed_date,
    )
    audit_service.log_from_request(
        db, request, identity,
        action="activity.assigned", resource_type="activity", resource_id=activity_id,
        new_value={"konfi_id": body.konfi_id, "points": entry.points},
    )
    return ActivityAssigned(
        id=entry.id,
        message="Activity assigned successfully",
        new_badges=[b.name for b in awarded],
    )


@router.get("/konfis/{konfi_id}/points", response_model=KonfiPoints)
async def konfi_points(
    konfi_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """Konfis read their own totals; staff need ``konfis.view``."""
    if identity.type == "konfi":
        if identity.id != konfi_id:
            raise AuthorizationError("Access denied")
    elif not identity.has_permission("konfis.view"):
        raise AuthorizationError("Insufficient permissions: 'konfis.view' required")
    return activity_service.konfi_points(db, identity.organization_id, konfi_id)
