"""Auth API router: login, current identity, password change."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from konfi.db.session import get_db
from konfi.schemas.schemas import (
    ChangePasswordRequest, IdentityOut, LoginRequest, LoginResponse, MessageResponse,
)
from konfi.services.auth_service import auth_service
from konfi.services.audit_service import audit_service
from konfi.core.security import Identity, get_current_identity

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, request: Request, db: Session = Depends(get_db)):
    """Authenticate staff or konfi and return a JWT."""
    result = auth_service.authenticate(db, body.username, body.password)
    user = result["user"]
    audit_service.log(
        db,
        organization_id=user["organization_id"],
        actor_id=user["id"],
        actor_username=user["username"],
        action="user.login",
        resource_type="user",
        resource_id=user["id"],
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent", "")[:500],
    )
    return result


@router.get("/me", response_model=IdentityOut)
async def get_me(identity: Identity = Depends(get_current_identity)):
    """Current user profile and effective permissions."""
    return IdentityOut(
        id=identity.id,
        username=identity.username,
        display_name=identity.display_name,
        type=identity.type,
        role_name=identity.role_name,
        role_display_name=identity.role_display_name,
        organization_id=identity.organization_id,
        organization_name=identity.organization_name,
        permissions=sorted(identity.permissions),
        assigned_jahrgaenge=[
            {"id": j.id, "name": j.name, "can_view": j.can_view, "can_edit": j.can_edit}
            for j in identity.assigned_jahrgaenge
        ],
    )


@router.put("/password", response_model=MessageResponse)
async def change_password(
    body: ChangePasswordRequest,
    request: Request,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    auth_service.change_password(db, identity.id, body.current_password, body.new_password)
    audit_service.log_from_request(
        db, request, identity,
        action="user.password_changed", resource_type="user", resource_id=identity.id,
    )
    return MessageResponse(message="Password changed")
