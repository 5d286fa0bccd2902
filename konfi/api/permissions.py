"""Permission catalog API router."""

from typing import Dict, List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from konfi.core.security import RequirePermission
from konfi.db.session import get_db
from konfi.schemas.schemas import PermissionOut
from konfi.services.role_service import role_service

router = APIRouter(
    prefix="/permissions",
    tags=["permissions"],
    dependencies=[Depends(RequirePermission("admin.roles.view"))],
)


@router.get("", response_model=List[PermissionOut])
async def list_permissions(db: Session = Depends(get_db)):
    return role_service.list_permissions(db)


@router.get("/grouped", response_model=Dict[str, List[PermissionOut]])
async def grouped_permissions(db: Session = Depends(get_db)):
    """Permissions keyed by module, for the role editor."""
    return role_service.grouped_permissions(db)
