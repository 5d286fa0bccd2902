"""Admin API router: audit trail and health."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from konfi.core.security import Identity, RequirePermission
from konfi.db.session import get_db
from konfi.schemas.schemas import AuditLogOut
from konfi.services.audit_service import audit_service

logger = logging.getLogger("konfi")

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/audit")
async def get_audit_logs(
    action: Optional[str] = Query(None),
    resource_type: Optional[str] = Query(None),
    actor_id: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequirePermission("admin.audit.view")),
):
    """Query the organization's audit log."""
    result = audit_service.query_logs(
        db, identity.organization_id, actor_id, action, resource_type, page, page_size,
    )
    return {
        "logs": [AuditLogOut.model_validate(log) for log in result["logs"]],
        "total": result["total"],
        "page": result["page"],
        "page_size": result["page_size"],
    }


@router.get("/health")
async def health_check(db: Session = Depends(get_db)):
    """Database connectivity check."""
    try:
        db.execute(text("SELECT 1"))
        db_ok = True
    except SQLAlchemyError:
        logger.exception("Health check query failed")
        db_ok = False

    return {
        "database": "ok" if db_ok else "error",
        "status": "healthy" if db_ok else "degraded",
    }
