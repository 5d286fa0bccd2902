"""Auth service: login, identity loading and password changes."""

from datetime import datetime, timezone
from typing import Any, Dict, Tuple

from sqlalchemy.orm import Session

from konfi.models.jahrgang import Jahrgang, UserJahrgangAssignment
from konfi.models.role import Permission, RolePermission
from konfi.models.user import User
from konfi.core.security import (
    Identity, JahrgangAccess, hash_password, verify_password, create_access_token, token_lifetime,
)
from konfi.core.exceptions import AuthenticationError, ValidationError


class AuthService:
    """Handles authentication for staff and konfis alike."""

    @staticmethod
    def granted_permissions(db: Session, role_id: int) -> frozenset:
        rows = (
            db.query(Permission.name)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .filter(RolePermission.role_id == role_id, RolePermission.granted.is_(True))
            .all()
        )
        return frozenset(r.name for r in rows)

    @staticmethod
    def assigned_jahrgaenge(db: Session, user_id: int) -> Tuple[JahrgangAccess, ...]:
        rows = (
            db.query(UserJahrgangAssignment)
            .join(Jahrgang, UserJahrgangAssignment.jahrgang_id == Jahrgang.id)
            .filter(UserJahrgangAssignment.user_id == user_id)
            .order_by(Jahrgang.name)
            .all()
        )
        return tuple(
            JahrgangAccess(id=a.jahrgang_id, name=a.jahrgang.name, can_view=a.can_view, can_edit=a.can_edit)
            for a in rows
        )

    @staticmethod
    def authenticate(db: Session, username: str, password: str) -> Dict[str, Any]:
        """Check credentials and return a signed token plus the user profile.

        Raises:
            AuthenticationError: If credentials are invalid or the account
                or its organization is deactivated.
        """
        user = db.query(User).filter(User.username == username).first()
        if not user or not verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid credentials")
        if not user.is_active:
            raise AuthenticationError("Account is deactivated")
        if not user.organization or not user.organization.is_active:
            raise AuthenticationError("Organization is deactivated")

        role_name = user.role_name
        token_type = "konfi" if role_name == "konfi" else "admin"
        token_data = {
            "sub": str(user.id),
            "id": user.id,
            "type": token_type,
            "role": role_name,
            "display_name": user.display_name,
            "organization_id": user.organization_id,
        }
        token = create_access_token(token_data, token_lifetime(role_name))

        user.last_login_at = datetime.now(timezone.utc).replace(tzinfo=None)
        db.commit()

        return {
            "token": token,
            "user": {
                "id": user.id,
                "username": user.username,
                "display_name": user.display_name,
                "type": token_type,
                "role_name": role_name,
                "role_display_name": user.role.display_name if user.role else None,
                "organization_id": user.organization_id,
                "organization_name": user.organization.display_name,
                "permissions": sorted(AuthService.granted_permissions(db, user.role_id)),
            },
        }

    @staticmethod
    def load_identity(db: Session, user_id: int) -> Identity:
        """Build the request identity for ``user_id``.

        Raises:
            AuthenticationError: If the user is missing or inactive, or the
                organization is inactive.
        """
        user = db.query(User).filter(User.id == user_id).first()
        if not user or not user.is_active:
            raise AuthenticationError("User not found or inactive")
        if not user.organization or not user.organization.is_active:
            raise AuthenticationError("Organization is inactive")

        return Identity(
            id=user.id,
            organization_id=user.organization_id,
            username=user.username,
            display_name=user.display_name,
            role_id=user.role_id,
            role_name=user.role_name,
            role_display_name=user.role.display_name if user.role else None,
            organization_name=user.organization.display_name,
            permissions=AuthService.granted_permissions(db, user.role_id),
            assigned_jahrgaenge=AuthService.assigned_jahrgaenge(db, user.id),
        )

    @staticmethod
    def change_password(db: Session, user_id: int, current_password: str, new_password: str) -> None:
        user = db.query(User).filter(User.id == user_id).first()
        if not user or not verify_password(current_password, user.password_hash):
            raise ValidationError("Current password is incorrect")
        user.password_hash = hash_password(new_password)
        db.commit()


auth_service = AuthService()
