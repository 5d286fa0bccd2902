"""Badge service: badge catalog and automatic awarding from the points ledger.

Badges are re-evaluated whenever points are credited to a konfi. The
evaluation only adds ``KonfiBadge`` rows and flushes; the caller commits.
"""

from collections import Counter
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from konfi.core.exceptions import AuthorizationError, ResourceNotFoundError, ValidationError
from konfi.core.security import Identity
from konfi.models.activity import Activity, ActivityType, KonfiActivity
from konfi.models.badge import Badge, KonfiBadge

CRITERIA_TYPES: Dict[str, Dict[str, Any]] = {
    "total_points": {
        "label": "Gesamtpunkte",
        "description": "Mindestanzahl aller Punkte",
    },
    "gottesdienst_points": {
        "label": "Gottesdienst-Punkte",
        "description": "Mindestanzahl gottesdienstlicher Punkte",
    },
    "gemeinde_points": {
        "label": "Gemeinde-Punkte",
        "description": "Mindestanzahl gemeindlicher Punkte",
    },
    "both_categories": {
        "label": "Beide Kategorien",
        "description": "Mindestpunkte in beiden Bereichen",
    },
    "activity_count": {
        "label": "Aktivitäten-Anzahl",
        "description": "Gesamtanzahl aller Aktivitäten",
    },
    "unique_activities": {
        "label": "Verschiedene Aktivitäten",
        "description": "Anzahl unterschiedlicher Aktivitäten",
    },
    "specific_activity": {
        "label": "Spezifische Aktivität",
        "description": "Bestimmte Aktivität X-mal absolviert",
        "extra": "activity_id",
    },
    "category_activities": {
        "label": "Kategorie-Aktivitäten",
        "description": "Aktivitäten aus bestimmter Kategorie",
        "extra": "category",
    },
    "activity_combination": {
        "label": "Aktivitäts-Kombination",
        "description": "Mindestanzahl der ausgewählten Aktivitäten absolviert",
        "extra": "activity_ids",
    },
    "time_based": {
        "label": "Zeitbasiert",
        "description": "Aktivitäten innerhalb eines Zeitraums von Tagen",
        "extra": "days",
    },
    "streak": {
        "label": "Serie",
        "description": "Aufeinanderfolgende Wochen mit mindestens einer Aktivität",
    },
}


def _max_in_window(days: List[date], window: int) -> int:
    """Largest number of entries whose dates fall within ``window`` consecutive days."""
    best = 0
    start = 0
    for end, day in enumerate(days):
        while (day - days[start]).days >= window:
            start += 1
        best = max(best, end - start + 1)
    return best


def _longest_week_streak(days: List[date]) -> int:
    weeks = sorted({d - timedelta(days=d.weekday()) for d in days})
    best = run = 0
    previous = None
    for week in weeks:
        run = run + 1 if previous is not None and (week - previous).days == 7 else 1
        best = max(best, run)
        previous = week
    return best


class BadgeService:

    @staticmethod
    def validate_criteria(criteria_type: str, criteria_extra: Optional[Dict[str, Any]]) -> None:
        criteria = CRITERIA_TYPES.get(criteria_type)
        if criteria is None:
            raise ValidationError(f"Unknown criteria type: {criteria_type}")
        needed = criteria.get("extra")
        if needed and (not criteria_extra or criteria_extra.get(needed) in (None, "", [])):
            raise ValidationError(f"criteria_extra.{needed} is required for {criteria_type}")

    @staticmethod
    def _earned_counts(db: Session, badge_ids: List[int]) -> Dict[int, int]:
        if not badge_ids:
            return {}
        rows = (
            db.query(KonfiBadge.badge_id, func.count(KonfiBadge.id))
            .filter(KonfiBadge.badge_id.in_(badge_ids))
            .group_by(KonfiBadge.badge_id)
            .all()
        )
        return {bid: count for bid, count in rows}

    @staticmethod
    def serialize(badge: Badge, earned_count: int = 0) -> Dict[str, Any]:
        return {
            "id": badge.id,
            "name": badge.name,
            "icon": badge.icon,
            "description": badge.description,
            "criteria_type": badge.criteria_type,
            "criteria_value": badge.criteria_value,
            "criteria_extra": badge.criteria_extra,
            "is_active": badge.is_active,
            "is_hidden": badge.is_hidden,
            "earned_count": earned_count,
            "created_at": badge.created_at,
        }

    @staticmethod
    def list_badges(db: Session, organization_id: int) -> List[Dict[str, Any]]:
        badges = (
            db.query(Badge)
            .filter(Badge.organization_id == organization_id)
            .order_by(Badge.created_at.desc(), Badge.id.desc())
            .all()
        )
        counts = BadgeService._earned_counts(db, [b.id for b in badges])
        return [BadgeService.serialize(b, counts.get(b.id, 0)) for b in badges]

    @staticmethod
    def get_badge(db: Session, organization_id: int, badge_id: int) -> Badge:
        badge = (
            db.query(Badge)
            .filter(Badge.id == badge_id, Badge.organization_id == organization_id)
            .first()
        )
        if not badge:
            raise ResourceNotFoundError("Badge not found")
        return badge

    @staticmethod
    def create_badge(db: Session, actor: Identity, fields: Dict[str, Any]) -> Badge:
        BadgeService.validate_criteria(fields["criteria_type"], fields.get("criteria_extra"))
        badge = Badge(organization_id=actor.organization_id, created_by=actor.id, is_active=True, **fields)
        db.add(badge)
        db.commit()
        db.refresh(badge)
        return badge

    @staticmethod
    def update_badge(db: Session, actor: Identity, badge_id: int, changes: Dict[str, Any]) -> Badge:
        if not changes:
            raise ValidationError("No fields to update")
        badge = BadgeService.get_badge(db, actor.organization_id, badge_id)
        criteria_type = changes.get("criteria_type") or badge.criteria_type
        criteria_extra = changes["criteria_extra"] if "criteria_extra" in changes else badge.criteria_extra
        BadgeService.validate_criteria(criteria_type, criteria_extra)

        for field, value in changes.items():
            if value is not None or field in ("description", "criteria_extra"):
                setattr(badge, field, value)
        db.commit()
        db.refresh(badge)
        return badge

    @staticmethod
    def delete_badge(db: Session, actor: Identity, badge_id: int) -> Badge:
        """Delete a badge and every award of it."""
        badge = BadgeService.get_badge(db, actor.organization_id, badge_id)
        try:
            db.query(KonfiBadge).filter(KonfiBadge.badge_id == badge.id).delete(synchronize_session=False)
            db.delete(badge)
            db.commit()
        except Exception:
            db.rollback()
            raise
        return badge

    @staticmethod
    def konfi_badges(db: Session, actor: Identity, konfi_id: int) -> Dict[str, Any]:
        """Earned and available badges. Hidden badges only show up once earned."""
        if actor.type == "konfi":
            if actor.id != konfi_id:
                raise AuthorizationError("Access denied")
        elif not actor.has_permission("badges.view"):
            raise AuthorizationError("Insufficient permissions: 'badges.view' required")

        from konfi.services.activity_service import activity_service

        activity_service.get_konfi(db, actor.organization_id, konfi_id)

        earned_rows = (
            db.query(KonfiBadge)
            .join(Badge, KonfiBadge.badge_id == Badge.id)
            .filter(KonfiBadge.konfi_id == konfi_id, Badge.is_active.is_(True))
            .order_by(KonfiBadge.earned_at.desc(), KonfiBadge.id.desc())
            .all()
        )
        earned_ids = {row.badge_id for row in earned_rows}
        available = (
            db.query(Badge)
            .filter(Badge.organization_id == actor.organization_id, Badge.is_active.is_(True))
            .order_by(Badge.criteria_value, Badge.id)
            .all()
        )
        available = [b for b in available if not b.is_hidden or b.id in earned_ids]

        earned = []
        for row in earned_rows:
            item = BadgeService.serialize(row.badge)
            item["earned_at"] = row.earned_at
            earned.append(item)
        return {
            "earned": earned,
            "available": [BadgeService.serialize(b) for b in available],
            "progress": f"{len(earned)}/{len(available)}",
        }

    @staticmethod
    def _is_met(badge: Badge, entries: List[Dict[str, Any]]) -> bool:
        value = badge.criteria_value
        extra = badge.criteria_extra or {}
        kind = badge.criteria_type
        by_type = Counter()
        for e in entries:
            by_type[e["type"]] += e["points"]
        gottesdienst = by_type[ActivityType.gottesdienst.value]
        gemeinde = by_type[ActivityType.gemeinde.value]

        if kind == "total_points":
            return gottesdienst + gemeinde >= value
        if kind == "gottesdienst_points":
            return gottesdienst >= value
        if kind == "gemeinde_points":
            return gemeinde >= value
        if kind == "both_categories":
            return gottesdienst >= value and gemeinde >= value
        if kind == "activity_count":
            return len(entries) >= value
        if kind == "unique_activities":
            return len({e["activity_name"] for e in entries}) >= value
        if kind == "specific_activity":
            wanted = int(extra.get("activity_id", 0))
            return sum(1 for e in entries if e["activity_id"] == wanted) >= value
        if kind == "category_activities":
            return sum(1 for e in entries if e["category"] == extra.get("category")) >= value
        if kind == "activity_combination":
            wanted = {int(i) for i in extra.get("activity_ids", [])}
            return len(wanted & {e["activity_id"] for e in entries}) >= value
        if kind == "time_based":
            days = sorted(e["day"] for e in entries)
            return bool(days) and _max_in_window(days, max(1, int(extra.get("days", 1)))) >= value
        if kind == "streak":
            return _longest_week_streak([e["day"] for e in entries]) >= value
        return False

    @staticmethod
    def check_and_award(db: Session, organization_id: int, konfi_id: int) -> List[Badge]:
        """Award every active badge the konfi now qualifies for. Flushes, does not commit."""
        db.flush()
        candidates = (
            db.query(Badge)
            .filter(
                Badge.organization_id == organization_id,
                Badge.is_active.is_(True),
                ~Badge.id.in_(select(KonfiBadge.badge_id).where(KonfiBadge.konfi_id == konfi_id)),
            )
            .all()
        )
        if not candidates:
            return []

        rows = (
            db.query(KonfiActivity, Activity.category)
            .outerjoin(Activity, KonfiActivity.activity_id == Activity.id)
            .filter(KonfiActivity.konfi_id == konfi_id)
            .all()
        )
        entries = [
            {
                "activity_id": entry.activity_id,
                "activity_name": entry.activity_name,
                "points": entry.points,
                "type": ActivityType(entry.type).value,
                "category": category,
                "day": entry.completed_date or (entry.created_at.date() if entry.created_at else date.today()),
            }
            for entry, category in rows
        ]

        awarded = [b for b in candidates if BadgeService._is_met(b, entries)]
        for badge in awarded:
            db.add(KonfiBadge(organization_id=organization_id, konfi_id=konfi_id, badge_id=badge.id))
        if awarded:
            db.flush()
        return awarded


badge_service = BadgeService()
