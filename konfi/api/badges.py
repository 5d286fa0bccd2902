"""Badges API router: catalog management and per-konfi badge progress."""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from konfi.core.security import Identity, RequirePermission, get_current_identity
from konfi.db.session import get_db
from konfi.schemas.schemas import BadgeCreate, BadgeOut, BadgeUpdate, KonfiBadges, MessageResponse
from konfi.services.audit_service import audit_service
from konfi.services.badge_service import CRITERIA_TYPES, badge_service

router = APIRouter(prefix="/badges", tags=["badges"])


@router.get("", response_model=List[BadgeOut])
async def list_badges(
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequirePermission("badges.view")),
):
    """Organization badges with how often each has been earned."""
    return badge_service.list_badges(db, identity.organization_id)


@router.get("/criteria-types")
async def criteria_types(identity: Identity = Depends(get_current_identity)) -> Dict[str, Any]:
    return CRITERIA_TYPES


@router.get("/konfis/{konfi_id}", response_model=KonfiBadges)
async def konfi_badges(
    konfi_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """Konfis read their own badges; staff need ``badges.view``."""
    return badge_service.konfi_badges(db, identity, konfi_id)


@router.post("", response_model=BadgeOut, status_code=status.HTTP_201_CREATED)
async def create_badge(
    body: BadgeCreate,
    request: Request,
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequirePermission("badges.create")),
):
    badge = badge_service.create_badge(db, identity, body.model_dump())
    audit_service.log_from_request(
        db, request, identity,
        action="badge.created", resource_type="badge", resource_id=badge.id,
        new_value=body.model_dump(mode="json"),
    )
    return badge_service.serialize(badge)


@router.put("/{badge_id}", response_model=BadgeOut)
async def update_badge(
    badge_id: int,
    body: BadgeUpdate,
    request: Request,
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequirePermission("badges.edit")),
):
    changes = body.model_dump(exclude_unset=True)
    badge = badge_service.update_badge(db, identity, badge_id, changes)
    audit_service.log_from_request(
        db, request, identity,
        action="badge.updated", resource_type="badge", resource_id=badge_id,
        new_value=body.model_dump(mode="json", exclude_unset=True),
    )
    return badge_service.serialize(badge)


@router.delete("/{badge_id}", response_model=MessageResponse)
async def delete_badge(
    badge_id: int,
    request: Request,
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequirePermission("badges.delete")),
):
    badge_service.delete_badge(db, identity, badge_id)
    audit_service.log_from_request(
        db, request, identity,
        action="badge.deleted", resource_type="badge", resource_id=badge_id,
    )
    return MessageResponse(message="Badge deleted successfully")
