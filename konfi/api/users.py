"""Users API router. Every route with a target user passes the hierarchy gate."""

from typing import List

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from konfi.core.hierarchy import can_manage_role
from konfi.core.security import (
    Identity, RequirePermission, RequireUserHierarchy, get_current_identity,
)
from konfi.db.session import get_db
from konfi.schemas.schemas import (
    JahrgangAssignmentsResult, JahrgangAssignmentsUpdate, MessageResponse, PasswordReset,
    UserCreate, UserCreated, UserJahrgangOut, UserOut, UserUpdate,
)
from konfi.services.audit_service import audit_service
from konfi.services.jahrgang_service import jahrgang_service
from konfi.services.user_service import user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=List[UserOut])
async def list_users(
    include_konfis: bool = Query(False),
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequirePermission("admin.users.view")),
):
    """All organization users, each marked with whether the caller may edit them."""
    return user_service.list_users(db, identity, include_konfis)


@router.get("/me/jahrgaenge", response_model=List[UserJahrgangOut])
async def my_jahrgaenge(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """Jahrgaenge assigned to the caller."""
    return jahrgang_service.user_assignments(db, identity.organization_id, identity.id)


@router.get(
    "/{user_id}",
    response_model=UserOut,
    dependencies=[Depends(RequirePermission("admin.users.view"))],
)
async def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequireUserHierarchy("view")),
):
    user = user_service.get_user(db, identity, user_id)
    return user_service.serialize(user, can_manage_role(identity.role_name, user.role_name))


@router.post(
    "",
    response_model=UserCreated,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(RequirePermission("admin.users.create"))],
)
async def create_user(
    body: UserCreate,
    request: Request,
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequireUserHierarchy("create")),
):
    user = user_service.create_user(
        db, identity,
        username=body.username,
        display_name=body.display_name,
        password=body.password,
        role_id=body.role_id,
        email=body.email,
        role_title=body.role_title,
        jahrgang_id=body.jahrgang_id,
    )
    audit_service.log_from_request(
        db, request, identity,
        action="user.created", resource_type="user", resource_id=user.id,
        new_value={"username": user.username, "role_id": user.role_id},
    )
    return UserCreated(
        id=user.id,
        message="User created successfully",
        username=user.username,
        display_name=user.display_name,
    )


@router.put(
    "/{user_id}",
    response_model=MessageResponse,
    dependencies=[Depends(RequirePermission("admin.users.edit"))],
)
async def update_user(
    user_id: int,
    body: UserUpdate,
    request: Request,
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequireUserHierarchy("update")),
):
    changes = body.model_dump(exclude_unset=True)
    user = user_service.get_user(db, identity, user_id)
    old = {"role_id": user.role_id, "is_active": user.is_active, "username": user.username}
    user_service.update_user(db, identity, user_id, changes)
    changes.pop("password", None)
    audit_service.log_from_request(
        db, request, identity,
        action="user.updated", resource_type="user", resource_id=user_id,
        old_value=old, new_value=changes,
    )
    return MessageResponse(message="User updated successfully")


@router.put(
    "/{user_id}/reset-password",
    response_model=MessageResponse,
    dependencies=[Depends(RequirePermission("admin.users.edit"))],
)
async def reset_password(
    user_id: int,
    body: PasswordReset,
    request: Request,
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequireUserHierarchy("update")),
):
    user_service.reset_password(db, identity, user_id, body.password)
    audit_service.log_from_request(
        db, request, identity,
        action="user.password_reset", resource_type="user", resource_id=user_id,
    )
    return MessageResponse(message="Password reset successfully")


@router.delete(
    "/{user_id}",
    response_model=MessageResponse,
    dependencies=[Depends(RequirePermission("admin.users.delete"))],
)
async def delete_user(
    user_id: int,
    request: Request,
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequireUserHierarchy("delete")),
):
    user = user_service.delete_user(db, identity, user_id)
    audit_service.log_from_request(
        db, request, identity,
        action="user.deleted", resource_type="user", resource_id=user_id,
        old_value={"username": user["username"], "role_name": user["role_name"]},
    )
    return MessageResponse(message="User deleted successfully")


@router.get(
    "/{user_id}/jahrgaenge",
    response_model=List[UserJahrgangOut],
    dependencies=[Depends(RequirePermission("admin.jahrgaenge.assign"))],
)
async def get_user_jahrgaenge(
    user_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequireUserHierarchy("view")),
):
    return jahrgang_service.user_assignments(db, identity.organization_id, user_id)


@router.post(
    "/{user_id}/jahrgaenge",
    response_model=JahrgangAssignmentsResult,
    dependencies=[Depends(RequirePermission("admin.jahrgaenge.assign"))],
)
async def assign_jahrgaenge(
    user_id: int,
    body: JahrgangAssignmentsUpdate,
    request: Request,
    db: Session = Depends(get_db),
    identity: Identity = Depends(RequireUserHierarchy("update")),
):
    """Replace the user's Jahrgang assignments."""
    assignments = [a.model_dump() for a in body.jahrgang_assignments]
    count = jahrgang_service.assign_to_user(db, identity, user_id, assignments)
    audit_service.log_from_request(
        db, request, identity,
        action="user.jahrgaenge_assigned", resource_type="user", resource_id=user_id,
        new_value={"jahrgang_assignments": assignments},
    )
    message = (
        "Jahrgang assignments updated successfully" if count
        else "All jahrgang assignments removed successfully"
    )
    return JahrgangAssignmentsResult(message=message, assignments_count=count)
