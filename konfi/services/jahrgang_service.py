"""Jahrgang service: confirmation cohorts and staff assignments to them."""

from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, aliased

from konfi.core.exceptions import (
    ResourceConflictError, ResourceNotFoundError, ValidationError,
)
from konfi.core.security import Identity
from konfi.models.jahrgang import Jahrgang, UserJahrgangAssignment
from konfi.models.user import User


class JahrgangService:

    @staticmethod
    def _konfi_counts(db: Session, jahrgang_ids: List[int]) -> Dict[int, int]:
        if not jahrgang_ids:
            return {}
        rows = (
            db.query(User.jahrgang_id, func.count(User.id))
            .filter(User.jahrgang_id.in_(jahrgang_ids))
            .group_by(User.jahrgang_id)
            .all()
        )
        return {jid: count for jid, count in rows}

    @staticmethod
    def serialize(jahrgang: Jahrgang, konfi_count: int = 0) -> Dict[str, Any]:
        return {
            "id": jahrgang.id,
            "name": jahrgang.name,
            "confirmation_date": jahrgang.confirmation_date,
            "konfi_count": konfi_count,
            "created_at": jahrgang.created_at,
        }

    @staticmethod
    def get_org_jahrgang(db: Session, organization_id: int, jahrgang_id: int) -> Jahrgang:
        jahrgang = (
            db.query(Jahrgang)
            .filter(Jahrgang.id == jahrgang_id, Jahrgang.organization_id == organization_id)
            .first()
        )
        if not jahrgang:
            raise ResourceNotFoundError("Jahrgang not found")
        return jahrgang

    @staticmethod
    def _check_name(db: Session, organization_id: int, name: str, exclude_id: Optional[int] = None) -> None:
        q = db.query(Jahrgang.id).filter(Jahrgang.organization_id == organization_id, Jahrgang.name == name)
        if exclude_id:
            q = q.filter(Jahrgang.id != exclude_id)
        if q.first():
            raise ResourceConflictError("Jahrgang name already exists")

    @staticmethod
    def list_jahrgaenge(db: Session, actor: Identity) -> List[Dict[str, Any]]:
        """Jahrgaenge visible to the actor: all for org admins, else the assigned ones."""
        query = db.query(Jahrgang).filter(Jahrgang.organization_id == actor.organization_id)
        visible = actor.viewable_jahrgang_ids()
        if visible is not None:
            if not visible:
                return []
            query = query.filter(Jahrgang.id.in_(sorted(visible)))
        jahrgaenge = query.order_by(Jahrgang.name).all()
        counts = JahrgangService._konfi_counts(db, [j.id for j in jahrgaenge])
        return [JahrgangService.serialize(j, counts.get(j.id, 0)) for j in jahrgaenge]

    @staticmethod
    def get_jahrgang(db: Session, actor: Identity, jahrgang_id: int) -> Dict[str, Any]:
        jahrgang = JahrgangService.get_org_jahrgang(db, actor.organization_id, jahrgang_id)
        konfis = (
            db.query(User)
            .filter(User.jahrgang_id == jahrgang.id)
            .order_by(User.display_name)
            .all()
        )
        detail = JahrgangService.serialize(jahrgang, len(konfis))
        detail["konfis"] = [
            {"id": k.id, "username": k.username, "display_name": k.display_name, "is_active": k.is_active}
            for k in konfis
        ]
        return detail

    @staticmethod
    def create_jahrgang(db: Session, actor: Identity, name: str, confirmation_date=None) -> Jahrgang:
        JahrgangService._check_name(db, actor.organization_id, name)
        jahrgang = Jahrgang(
            organization_id=actor.organization_id,
            name=name,
            confirmation_date=confirmation_date,
        )
        db.add(jahrgang)
        db.commit()
        db.refresh(jahrgang)
        return jahrgang

    @staticmethod
    def update_jahrgang(db: Session, actor: Identity, jahrgang_id: int, changes: Dict[str, Any]) -> Jahrgang:
        if not changes:
            raise ValidationError("No fields to update")
        jahrgang = JahrgangService.get_org_jahrgang(db, actor.organization_id, jahrgang_id)
        if changes.get("name"):
            JahrgangService._check_name(db, actor.organization_id, changes["name"], exclude_id=jahrgang.id)
            jahrgang.name = changes["name"]
        if "confirmation_date" in changes:
            jahrgang.confirmation_date = changes["confirmation_date"]
        db.commit()
        db.refresh(jahrgang)
        return jahrgang

    @staticmethod
    def delete_jahrgang(db: Session, actor: Identity, jahrgang_id: int) -> Jahrgang:
        """Delete an empty Jahrgang together with its staff assignments."""
        jahrgang = JahrgangService.get_org_jahrgang(db, actor.organization_id, jahrgang_id)
        if JahrgangService._konfi_counts(db, [jahrgang.id]).get(jahrgang.id):
            raise ValidationError("Cannot delete jahrgang with assigned konfis")
        try:
            db.query(UserJahrgangAssignment).filter(
                UserJahrgangAssignment.jahrgang_id == jahrgang.id
            ).delete(synchronize_session=False)
            db.delete(jahrgang)
            db.commit()
        except Exception:
            db.rollback()
            raise
        return jahrgang

    @staticmethod
    def assign_to_user(
        db: Session, actor: Identity, user_id: int, assignments: List[Dict[str, Any]],
    ) -> int:
        """Replace a user's Jahrgang assignments. An empty list removes all of them.

        Raises:
            ResourceNotFoundError: user not in the actor's organization.
            ValidationError: duplicate ids, or an id outside the organization.
        """
        user = (
            db.query(User)
            .filter(User.id == user_id, User.organization_id == actor.organization_id)
            .first()
        )
        if not user:
            raise ResourceNotFoundError("User not found in your organization")

        ids = [a["jahrgang_id"] for a in assignments]
        if len(set(ids)) != len(ids):
            raise ValidationError("Duplicate jahrgang ids")
        if ids:
            valid = (
                db.query(func.count(Jahrgang.id))
                .filter(Jahrgang.organization_id == actor.organization_id, Jahrgang.id.in_(ids))
                .scalar()
            )
            if valid != len(ids):
                raise ValidationError("At least one jahrgang id is invalid or belongs to another organization")

        try:
            db.query(UserJahrgangAssignment).filter(
                UserJahrgangAssignment.user_id == user.id
            ).delete(synchronize_session=False)
            for a in assignments:
                db.add(UserJahrgangAssignment(
                    user_id=user.id,
                    jahrgang_id=a["jahrgang_id"],
                    can_view=a.get("can_view", True),
                    can_edit=a.get("can_edit", False),
                    assigned_by=actor.id,
                ))
            db.commit()
        except Exception:
            db.rollback()
            raise
        return len(assignments)

    @staticmethod
    def user_assignments(db: Session, organization_id: int, user_id: int) -> List[Dict[str, Any]]:
        assigner = aliased(User)
        rows = (
            db.query(UserJahrgangAssignment, Jahrgang, assigner.display_name)
            .join(Jahrgang, UserJahrgangAssignment.jahrgang_id == Jahrgang.id)
            .outerjoin(assigner, UserJahrgangAssignment.assigned_by == assigner.id)
            .filter(UserJahrgangAssignment.user_id == user_id, Jahrgang.organization_id == organization_id)
            .order_by(Jahrgang.name)
            .all()
        )
        return [
            {
                "jahrgang_id": jahrgang.id,
                "jahrgang_name": jahrgang.name,
                "confirmation_date": jahrgang.confirmation_date,
                "can_view": assignment.can_view,
                "can_edit": assignment.can_edit,
                "assigned_at": assignment.assigned_at,
                "assigned_by_name": assigned_by_name,
            }
            for assignment, jahrgang, assigned_by_name in rows
        ]


jahrgang_service = JahrgangService()
