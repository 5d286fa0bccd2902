"""Jahrgaenge API router. Staff other than org admins only reach assigned Jahrgaenge."""

from typing import List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from konfi.core.security import Identity, RequireJahrgangAccess, RequirePermission
from konfi.db.session import get_db
from konfi.schemas.schemas import (
    JahrgangCreate, JahrgangDetail, JahrgangOut, JahrgangUpdate, MessageResponse,
)
from konfi.services.audit_service import audit_service
from konfi.services.jahrgang_service import jahrgang_service

router = APIRouter(prefix="/jahrgaenge", tags=["jahrgaenge"])


@router.get("", response_model=List[JahrgangOut])
async def list_jahrgaenge(
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequirePermission("jahrgaenge.view")),
):
    return jahrgang_service.list_jahrgaenge(db, identity)


@router.get(
    "/{jahrgang_id}",
    response_model=JahrgangDetail,
    dependencies=[Depends(RequirePermission("jahrgaenge.view"))],
)
async def get_jahrgang(
    jahrgang_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequireJahrgangAccess()),
):
    """A Jahrgang with its konfis."""
    return jahrgang_service.get_jahrgang(db, identity, jahrgang_id)


@router.post("", response_model=JahrgangOut, status_code=status.HTTP_201_CREATED)
async def create_jahrgang(
    body: JahrgangCreate,
    request: Request,
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequirePermission("jahrgaenge.create")),
):
    jahrgang = jahrgang_service.create_jahrgang(db, identity, body.name, body.confirmation_date)
    audit_service.log_from_request(
        db, request, identity,
        action="jahrgang.created", resource_type="jahrgang", resource_id=jahrgang.id,
        new_value=body.model_dump(mode="json"),
    )
    return jahrgang_service.serialize(jahrgang)


@router.put(
    "/{jahrgang_id}",
    response_model=JahrgangOut,
    dependencies=[Depends(RequirePermission("jahrgaenge.edit"))],
)
async def update_jahrgang(
    jahrgang_id: int,
    body: JahrgangUpdate,
    request: Request,
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequireJahrgangAccess(require_edit=True)),
):
    changes = body.model_dump(exclude_unset=True)
    jahrgang = jahrgang_service.update_jahrgang(db, identity, jahrgang_id, changes)
    audit_service.log_from_request(
        db, request, identity,
        action="jahrgang.updated", resource_type="jahrgang", resource_id=jahrgang_id,
        new_value=body.model_dump(mode="json", exclude_unset=True),
    )
    return jahrgang_service.serialize(jahrgang)


@router.delete(
    "/{jahrgang_id}",
    response_model=MessageResponse,
    dependencies=[Depends(RequirePermission("jahrgaenge.delete"))],
)
async def delete_jahrgang(
    jahrgang_id: int,
    request: Request,
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequireJahrgangAccess(require_edit=True)),
):
    jahrgang_service.delete_jahrgang(db, identity, jahrgang_id)
    audit_service.log_from_request(
        db, request, identity,
        action="jahrgang.deleted", resource_type="jahrgang", resource_id=jahrgang_id,
    )
    return MessageResponse(message="Jahrgang deleted successfully")
