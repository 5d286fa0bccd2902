"""Activity requests API router."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from konfi.core.security import Identity, RequirePermission, get_current_identity
from konfi.db.session import get_db
from konfi.models.activity import RequestStatus
from konfi.schemas.schemas import (
    ActivityRequestCreate, ActivityRequestDecision, ActivityRequestOut, MessageResponse,
)
from konfi.services.activity_request_service import activity_request_service
from konfi.services.audit_service import audit_service

router = APIRouter(prefix="/activity-requests", tags=["activity-requests"])


@router.get("", response_model=List[ActivityRequestOut])
async def list_requests(
    status_filter: Optional[RequestStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequirePermission("requests.view")),
):
    reqs = activity_request_service.list_requests(db, identity.organization_id, status_filter)
    return [activity_request_service.serialize(r) for r in reqs]


@router.get("/categories", response_model=List[str])
async def categories(identity: Identity = Depends(get_current_identity)):
    return activity_request_service.categories()


@router.get("/konfi/{konfi_id}", response_model=List[ActivityRequestOut])
async def list_konfi_requests(
    konfi_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    reqs = activity_request_service.list_for_konfi(db, identity, konfi_id)
    return [activity_request_service.serialize(r) for r in reqs]


@router.post("", response_model=ActivityRequestOut, status_code=status.HTTP_201_CREATED)
async def create_request(
    body: ActivityRequestCreate,
    request: Request,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """Konfis file for themselves; staff must name the konfi."""
    req = activity_request_service.create_request(
        db, identity,
        activity_name=body.activity_name,
        description=body.description,
        konfi_id=body.konfi_id,
        completed_date=body.completed_date,
        category=body.category,
    )
    audit_service.log_from_request(
        db, request, identity,
        action="request.created", resource_type="request", resource_id=req.id,
        new_value={"konfi_id": req.konfi_id, "activity_name": req.activity_name},
    )
    return activity_request_service.serialize(req)


@router.put("/{request_id}", response_model=ActivityRequestOut)
async def decide_request(
    request_id: int,
    body: ActivityRequestDecision,
    request: Request,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """Approve (crediting points) or reject a pending request."""
    req = activity_request_service.decide(
        db, identity, request_id, body.status, body.admin_comment, body.points,
    )
    audit_service.log_from_request(
        db, request, identity,
        action=f"request.{req.status.value}", resource_type="request", resource_id=req.id,
        new_value={"status": req.status.value, "points": body.points},
    )
    return activity_request_service.serialize(req)


@router.delete("/{request_id}", response_model=MessageResponse)
async def delete_request(
    request_id: int,
    request: Request,
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequirePermission("requests.delete")),
):
    activity_request_service.delete_request(db, identity, request_id)
    audit_service.log_from_request(
        db, request, identity,
        action="request.deleted", resource_type="request", resource_id=request_id,
    )
    return MessageResponse(message="Activity request deleted successfully")
