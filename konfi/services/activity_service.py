"""Activity service: activity catalog, point awards and per-konfi totals."""

from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from konfi.core.exceptions import ResourceNotFoundError, ValidationError
from konfi.core.hierarchy import KONFI
from konfi.core.security import Identity
from konfi.models.activity import Activity, ActivityType, KonfiActivity
from konfi.models.badge import Badge
from konfi.models.role import Role
from konfi.models.user import User
from konfi.services.badge_service import badge_service
from konfi.services.settings_service import settings_service


class ActivityService:

    @staticmethod
    def get_konfi(db: Session, organization_id: int, konfi_id: int) -> User:
        """A konfi-role user of the organization, or 404."""
        konfi = (
            db.query(User)
            .join(Role, User.role_id == Role.id)
            .filter(
                User.id == konfi_id,
                User.organization_id == organization_id,
                Role.name == KONFI,
            )
            .first()
        )
        if not konfi:
            raise ResourceNotFoundError("Konfi not found")
        return konfi

    @staticmethod
    def list_activities(db: Session, organization_id: int) -> List[Activity]:
        return (
            db.query(Activity)
            .filter(Activity.organization_id == organization_id)
            .order_by(Activity.type, Activity.name)
            .all()
        )

    @staticmethod
    def get_activity(db: Session, organization_id: int, activity_id: int) -> Activity:
        activity = (
            db.query(Activity)
            .filter(Activity.id == activity_id, Activity.organization_id == organization_id)
            .first()
        )
        if not activity:
            raise ResourceNotFoundError("Activity not found")
        return activity

    @staticmethod
    def create_activity(
        db: Session,
        organization_id: int,
        name: str,
        points: int,
        type: ActivityType,
        category: Optional[str] = None,
    ) -> Activity:
        activity = Activity(
            organization_id=organization_id,
            name=name,
            points=points,
            type=type,
            category=category,
        )
        db.add(activity)
        db.commit()
        db.refresh(activity)
        return activity

    @staticmethod
    def update_activity(db: Session, organization_id: int, activity_id: int, changes: Dict[str, Any]) -> Activity:
        if not changes:
            raise ValidationError("No fields to update")
        activity = ActivityService.get_activity(db, organization_id, activity_id)
        for field in ("name", "points", "type"):
            if changes.get(field) is not None:
                setattr(activity, field, changes[field])
        if "category" in changes:
            activity.category = changes["category"]
        db.commit()
        db.refresh(activity)
        return activity

    @staticmethod
    def delete_activity(db: Session, organization_id: int, activity_id: int) -> Activity:
        """Delete an activity that has never been awarded."""
        activity = ActivityService.get_activity(db, organization_id, activity_id)
        in_use = (
            db.query(func.count(KonfiActivity.id))
            .filter(KonfiActivity.activity_id == activity.id)
            .scalar()
        )
        if in_use:
            raise ValidationError("Activity cannot be deleted because it has been assigned to konfis")
        db.delete(activity)
        db.commit()
        return activity

    @staticmethod
    def assign_activity(
        db: Session,
        actor: Identity,
        activity_id: int,
        konfi_id: int,
        completed_date: Optional[date] = None,
    ) -> Tuple[KonfiActivity, List[Badge]]:
        """Award an activity's points to a konfi, plus any badges that unlocks."""
        activity = ActivityService.get_activity(db, actor.organization_id, activity_id)
        ActivityService.get_konfi(db, actor.organization_id, konfi_id)
        entry = KonfiActivity(
            organization_id=actor.organization_id,
            konfi_id=konfi_id,
            activity_id=activity.id,
            activity_name=activity.name,
            points=activity.points,
            type=activity.type,
            awarded_by=actor.id,
            completed_date=completed_date or date.today(),
        )
        try:
            db.add(entry)
            awarded = badge_service.check_and_award(db, actor.organization_id, konfi_id)
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(entry)
        return entry, awarded

    @staticmethod
    def konfi_points(db: Session, organization_id: int, konfi_id: int) -> Dict[str, int]:
        """Points per activity type plus the organization's targets."""
        ActivityService.get_konfi(db, organization_id, konfi_id)
        rows = (
            db.query(KonfiActivity.type, func.coalesce(func.sum(KonfiActivity.points), 0))
            .filter(KonfiActivity.konfi_id == konfi_id)
            .group_by(KonfiActivity.type)
            .all()
        )
        totals = {ActivityType(t).value: int(points) for t, points in rows}
        gottesdienst = totals.get("gottesdienst", 0)
        gemeinde = totals.get("gemeinde", 0)
        return {
            "konfi_id": konfi_id,
            "gottesdienst": gottesdienst,
            "gemeinde": gemeinde,
            "total": gottesdienst + gemeinde,
            "target_gottesdienst": settings_service.target(db, organization_id, "target_gottesdienst"),
            "target_gemeinde": settings_service.target(db, organization_id, "target_gemeinde"),
        }


activity_service = ActivityService()
