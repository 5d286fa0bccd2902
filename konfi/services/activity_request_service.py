"""Activity requests: konfis report activities, staff approve or reject them."""

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from konfi.core.exceptions import AuthorizationError, ResourceNotFoundError, ValidationError
from konfi.core.security import Identity
from konfi.models.activity import ActivityRequest, ActivityType, KonfiActivity, RequestStatus
from konfi.services.activity_service import activity_service
from konfi.services.badge_service import badge_service


class ActivityRequestService:

    @staticmethod
    def serialize(req: ActivityRequest) -> Dict[str, Any]:
        return {
            "id": req.id,
            "konfi_id": req.konfi_id,
            "konfi_name": req.konfi.display_name if req.konfi else None,
            "activity_name": req.activity_name,
            "description": req.description,
            "completed_date": req.completed_date,
            "category": req.category,
            "status": req.status,
            "admin_comment": req.admin_comment,
            "approved_by": req.approved_by,
            "approved_at": req.approved_at,
            "created_at": req.created_at,
        }

    @staticmethod
    def categories() -> List[str]:
        return [t.value for t in ActivityType]

    @staticmethod
    def list_requests(
        db: Session, organization_id: int, status: Optional[RequestStatus] = None
    ) -> List[ActivityRequest]:
        query = db.query(ActivityRequest).filter(ActivityRequest.organization_id == organization_id)
        if status is not None:
            query = query.filter(ActivityRequest.status == status)
        return query.order_by(ActivityRequest.created_at.desc(), ActivityRequest.id.desc()).all()

    @staticmethod
    def list_for_konfi(db: Session, actor: Identity, konfi_id: int) -> List[ActivityRequest]:
        """A konfi sees only their own requests; staff need ``requests.view``."""
        if actor.type == "konfi":
            if actor.id != konfi_id:
                raise AuthorizationError("Access denied")
        elif not actor.has_permission("requests.view"):
            raise AuthorizationError("Insufficient permissions: 'requests.view' required")
        activity_service.get_konfi(db, actor.organization_id, konfi_id)
        return (
            db.query(ActivityRequest)
            .filter(
                ActivityRequest.konfi_id == konfi_id,
                ActivityRequest.organization_id == actor.organization_id,
            )
            .order_by(ActivityRequest.created_at.desc(), ActivityRequest.id.desc())
            .all()
        )

    @staticmethod
    def create_request(
        db: Session,
        actor: Identity,
        activity_name: str,
        description: str,
        konfi_id: Optional[int] = None,
        completed_date: Optional[date] = None,
        category: ActivityType = ActivityType.gemeinde,
    ) -> ActivityRequest:
        if actor.type == "konfi":
            if konfi_id is not None and konfi_id != actor.id:
                raise AuthorizationError("Konfis can only submit requests for themselves")
            konfi_id = actor.id
        elif konfi_id is None:
            raise ValidationError("konfi_id is required")
        activity_service.get_konfi(db, actor.organization_id, konfi_id)

        req = ActivityRequest(
            organization_id=actor.organization_id,
            konfi_id=konfi_id,
            activity_name=activity_name,
            description=description,
            completed_date=completed_date or date.today(),
            category=category,
            status=RequestStatus.pending,
        )
        db.add(req)
        db.commit()
        db.refresh(req)
        return req

    @staticmethod
    def _get(db: Session, organization_id: int, request_id: int) -> ActivityRequest:
        req = (
            db.query(ActivityRequest)
            .filter(ActivityRequest.id == request_id, ActivityRequest.organization_id == organization_id)
            .first()
        )
        if not req:
            raise ResourceNotFoundError("Activity request not found")
        return req

    @staticmethod
    def decide(
        db: Session,
        actor: Identity,
        request_id: int,
        status: RequestStatus,
        admin_comment: Optional[str] = None,
        points: int = 1,
    ) -> ActivityRequest:
        """Approve or reject a pending request.

        Approval credits ``points`` to the konfi's ledger, and awards any
        badges that unlocks, in the same transaction that marks the request
        approved.
        """
        if status == RequestStatus.pending:
            raise ValidationError("Status must be 'approved' or 'rejected'")
        needed = "requests.approve" if status == RequestStatus.approved else "requests.reject"
        if not actor.has_permission(needed):
            raise AuthorizationError(f"Insufficient permissions: '{needed}' required")

        req = ActivityRequestService._get(db, actor.organization_id, request_id)
        if req.status != RequestStatus.pending:
            raise ValidationError("Request has already been processed")

        try:
            req.status = status
            req.admin_comment = admin_comment
            req.approved_by = actor.id
            req.approved_at = datetime.now(timezone.utc).replace(tzinfo=None)
            if status == RequestStatus.approved:
                db.add(KonfiActivity(
                    organization_id=req.organization_id,
                    konfi_id=req.konfi_id,
                    activity_id=None,
                    activity_name=req.activity_name,
                    points=points,
                    type=req.category,
                    awarded_by=actor.id,
                    completed_date=req.completed_date,
                ))
                badge_service.check_and_award(db, req.organization_id, req.konfi_id)
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(req)
        return req

    @staticmethod
    def delete_request(db: Session, actor: Identity, request_id: int) -> ActivityRequest:
        req = ActivityRequestService._get(db, actor.organization_id, request_id)
        db.delete(req)
        db.commit()
        return req


activity_request_service = ActivityRequestService()
