"""User service: staff and konfi accounts within one organization."""

from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from konfi.core.exceptions import ResourceConflictError, ResourceNotFoundError, ValidationError
from konfi.core.hierarchy import KONFI, filter_users_by_hierarchy, get_role_level
from konfi.core.security import Identity, hash_password
from konfi.models.activity import ActivityRequest, KonfiActivity
from konfi.models.badge import KonfiBadge
from konfi.models.jahrgang import Jahrgang, UserJahrgangAssignment
from konfi.models.role import Role
from konfi.models.user import User


class UserService:
    """User CRUD. Hierarchy checks run before these methods are reached."""

    @staticmethod
    def serialize(user: User, can_edit: bool = False) -> Dict[str, Any]:
        return {
            "id": user.id,
            "username": user.username,
            "display_name": user.display_name,
            "email": user.email,
            "role_title": user.role_title,
            "role_id": user.role_id,
            "role_name": user.role_name,
            "role_display_name": user.role.display_name if user.role else None,
            "jahrgang_id": user.jahrgang_id,
            "jahrgang_name": user.jahrgang.name if user.jahrgang else None,
            "is_active": user.is_active,
            "last_login_at": user.last_login_at,
            "created_at": user.created_at,
            "can_edit": can_edit,
        }

    @staticmethod
    def _org_role(db: Session, actor: Identity, role_id: int) -> Role:
        role = (
            db.query(Role)
            .filter(Role.id == role_id, Role.organization_id == actor.organization_id)
            .first()
        )
        if not role:
            raise ValidationError("Invalid role for this organization")
        return role

    @staticmethod
    def _org_jahrgang(db: Session, actor: Identity, jahrgang_id: int) -> Jahrgang:
        jahrgang = (
            db.query(Jahrgang)
            .filter(Jahrgang.id == jahrgang_id, Jahrgang.organization_id == actor.organization_id)
            .first()
        )
        if not jahrgang:
            raise ValidationError("Invalid jahrgang for this organization")
        return jahrgang

    @staticmethod
    def _check_unique(db: Session, username: Optional[str], email: Optional[str], exclude_id: Optional[int] = None):
        if username:
            q = db.query(User.id).filter(User.username == username)
            if exclude_id:
                q = q.filter(User.id != exclude_id)
            if q.first():
                raise ResourceConflictError("Username already exists")
        if email:
            q = db.query(User.id).filter(User.email == email)
            if exclude_id:
                q = q.filter(User.id != exclude_id)
            if q.first():
                raise ResourceConflictError("Email already exists")

    @staticmethod
    def list_users(db: Session, actor: Identity, include_konfis: bool = False) -> List[Dict[str, Any]]:
        """Organization users with a ``can_edit`` flag. Everyone is listed."""
        query = (
            db.query(User)
            .join(Role, User.role_id == Role.id)
            .filter(User.organization_id == actor.organization_id)
        )
        if not include_konfis:
            query = query.filter(Role.name != KONFI)
        users = query.all()
        users.sort(key=lambda u: (-get_role_level(u.role_name), u.display_name.lower()))

        editable = {u.id for u in filter_users_by_hierarchy(users, actor.role_name)}
        return [UserService.serialize(u, u.id in editable) for u in users]

    @staticmethod
    def get_user(db: Session, actor: Identity, user_id: int) -> User:
        user = (
            db.query(User)
            .filter(User.id == user_id, User.organization_id == actor.organization_id)
            .first()
        )
        if not user:
            raise ResourceNotFoundError("User not found")
        return user

    @staticmethod
    def create_user(
        db: Session,
        actor: Identity,
        username: str,
        display_name: str,
        password: str,
        role_id: int,
        email: Optional[str] = None,
        role_title: Optional[str] = None,
        jahrgang_id: Optional[int] = None,
    ) -> User:
        UserService._org_role(db, actor, role_id)
        if jahrgang_id is not None:
            UserService._org_jahrgang(db, actor, jahrgang_id)
        UserService._check_unique(db, username, email)

        user = User(
            organization_id=actor.organization_id,
            role_id=role_id,
            username=username,
            display_name=display_name,
            email=email,
            role_title=role_title,
            jahrgang_id=jahrgang_id,
            password_hash=hash_password(password),
            is_active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def update_user(db: Session, actor: Identity, user_id: int, changes: Dict[str, Any]) -> User:
        """Apply the fields the client sent. An empty change set is rejected."""
        if not changes:
            raise ValidationError("No fields to update")
        user = UserService.get_user(db, actor, user_id)

        if "role_id" in changes:
            if changes["role_id"] is None:
                raise ValidationError("role_id cannot be empty")
            UserService._org_role(db, actor, changes["role_id"])
        if changes.get("jahrgang_id") is not None:
            UserService._org_jahrgang(db, actor, changes["jahrgang_id"])
        if changes.get("is_active") is False and user.id == actor.id:
            raise ValidationError("You cannot deactivate your own account")
        UserService._check_unique(db, changes.get("username"), changes.get("email"), exclude_id=user.id)

        for field in ("username", "display_name", "email", "role_title", "role_id", "jahrgang_id", "is_active"):
            if field in changes and (changes[field] is not None or field in ("email", "role_title", "jahrgang_id")):
                setattr(user, field, changes[field])
        if changes.get("password"):
            user.password_hash = hash_password(changes["password"])
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def reset_password(db: Session, actor: Identity, user_id: int, password: str) -> User:
        user = UserService.get_user(db, actor, user_id)
        user.password_hash = hash_password(password)
        db.commit()
        return user

    @staticmethod
    def delete_user(db: Session, actor: Identity, user_id: int) -> Dict[str, Any]:
        """Delete a user with their ledger, requests, badges and assignments in one transaction."""
        if user_id == actor.id:
            raise ValidationError("You cannot delete your own account")
        user = UserService.get_user(db, actor, user_id)
        snapshot = {"id": user.id, "username": user.username, "role_name": user.role_name}
        try:
            db.query(KonfiActivity).filter(KonfiActivity.konfi_id == user.id).delete(synchronize_session=False)
            db.query(ActivityRequest).filter(ActivityRequest.konfi_id == user.id).delete(synchronize_session=False)
            db.query(KonfiBadge).filter(KonfiBadge.konfi_id == user.id).delete(synchronize_session=False)
            db.query(UserJahrgangAssignment).filter(
                UserJahrgangAssignment.user_id == user.id
            ).delete(synchronize_session=False)
            db.delete(user)
            db.commit()
        except Exception:
            db.rollback()
            raise
        return snapshot


user_service = UserService()
