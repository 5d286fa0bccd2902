"""Organization settings API router."""

from typing import Dict

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from konfi.core.security import Identity, RequirePermission, get_current_identity
from konfi.db.session import get_db
from konfi.schemas.schemas import SettingValue, TargetSettingsUpdate
from konfi.services.audit_service import audit_service
from konfi.services.settings_service import settings_service

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("", response_model=Dict[str, str])
async def get_settings(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    return settings_service.get_all(db, identity.organization_id)


@router.put("", response_model=Dict[str, str])
async def update_targets(
    body: TargetSettingsUpdate,
    request: Request,
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequirePermission("settings.edit")),
):
    """Update the point targets."""
    old = settings_service.get_all(db, identity.organization_id)
    result = settings_service.update_targets(
        db, identity.organization_id, body.target_gottesdienst, body.target_gemeinde,
    )
    audit_service.log_from_request(
        db, request, identity,
        action="setting.updated", resource_type="setting",
        old_value=old, new_value=body.model_dump(exclude_none=True),
    )
    return result


@router.get("/{key}")
async def get_setting(
    key: str,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    setting = settings_service.get(db, identity.organization_id, key)
    return {"key": setting.key, "value": setting.value}


@router.put("/{key}")
async def set_setting(
    key: str,
    body: SettingValue,
    request: Request,
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequirePermission("settings.edit")),
):
    setting = settings_service.set(db, identity.organization_id, key, body.value)
    result = {"key": setting.key, "value": setting.value}
    audit_service.log_from_request(
        db, request, identity,
        action="setting.updated", resource_type="setting", resource_id=key,
        new_value=result,
    )
    return result
