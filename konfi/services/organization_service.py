"""Organization service: tenants, their bootstrap data and statistics."""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from konfi.core.exceptions import (
    AuthorizationError, ResourceConflictError, ResourceNotFoundError, ValidationError,
)
from konfi.core.hierarchy import KONFI, ORG_ADMIN
from konfi.core.security import Identity, hash_password
from konfi.models.activity import Activity, ActivityRequest, KonfiActivity, RequestStatus
from konfi.models.badge import Badge, KonfiBadge
from konfi.models.jahrgang import Jahrgang, UserJahrgangAssignment
from konfi.models.organization import Organization
from konfi.models.role import Role, RolePermission
from konfi.models.setting import Setting
from konfi.models.user import User
from konfi.services.role_service import role_service
from konfi.services.settings_service import settings_service

logger = logging.getLogger("konfi")

ORG_FIELDS = (
    "name", "display_name", "description", "contact_email",
    "contact_phone", "address", "website_url", "is_active",
)


class OrganizationService:

    @staticmethod
    def _counts(db: Session, organization_id: int) -> Dict[str, int]:
        users = (
            db.query(func.count(User.id))
            .join(Role, User.role_id == Role.id)
            .filter(User.organization_id == organization_id, Role.name != KONFI)
            .scalar()
        )
        konfis = (
            db.query(func.count(User.id))
            .join(Role, User.role_id == Role.id)
            .filter(User.organization_id == organization_id, Role.name == KONFI)
            .scalar()
        )
        return {"user_count": users or 0, "konfi_count": konfis or 0}

    @staticmethod
    def serialize(db: Session, org: Organization) -> Dict[str, Any]:
        data = {
            "id": org.id,
            "name": org.name,
            "slug": org.slug,
            "display_name": org.display_name,
            "description": org.description,
            "contact_email": org.contact_email,
            "contact_phone": org.contact_phone,
            "address": org.address,
            "website_url": org.website_url,
            "is_active": org.is_active,
            "created_at": org.created_at,
        }
        data.update(OrganizationService._counts(db, org.id))
        return data

    @staticmethod
    def _get(db: Session, organization_id: int) -> Organization:
        org = db.query(Organization).filter(Organization.id == organization_id).first()
        if not org:
            raise ResourceNotFoundError("Organization not found")
        return org

    @staticmethod
    def _own(actor: Identity, organization_id: int) -> None:
        if organization_id != actor.organization_id:
            raise AuthorizationError("Access denied to this organization")

    @staticmethod
    def list_organizations(db: Session) -> List[Dict[str, Any]]:
        orgs = db.query(Organization).order_by(Organization.display_name).all()
        return [OrganizationService.serialize(db, o) for o in orgs]

    @staticmethod
    def get_organization(db: Session, actor: Identity, organization_id: int) -> Organization:
        OrganizationService._own(actor, organization_id)
        return OrganizationService._get(db, organization_id)

    @staticmethod
    def create_organization(
        db: Session,
        name: str,
        slug: str,
        display_name: str,
        admin_username: str,
        admin_password: str,
        admin_display_name: str,
        admin_email: Optional[str] = None,
        **details: Any,
    ) -> Dict[str, Any]:
        """Create an organization with its system roles, default settings and first org admin.

        Everything happens in one transaction; on any failure nothing is kept.
        """
        if db.query(Organization.id).filter(Organization.slug == slug).first():
            raise ResourceConflictError(f"Organization slug '{slug}' already exists")
        if db.query(User.id).filter(User.username == admin_username).first():
            raise ResourceConflictError("Username already exists")
        if admin_email and db.query(User.id).filter(User.email == admin_email).first():
            raise ResourceConflictError("Email already exists")

        try:
            org = Organization(
                name=name,
                slug=slug,
                display_name=display_name,
                is_active=True,
                **{k: v for k, v in details.items() if k in ORG_FIELDS},
            )
            db.add(org)
            db.flush()

            roles = role_service.create_system_roles(db, org.id)
            settings_service.seed_defaults(db, org.id)

            admin = User(
                organization_id=org.id,
                role_id=roles[ORG_ADMIN].id,
                username=admin_username,
                display_name=admin_display_name,
                email=admin_email,
                password_hash=hash_password(admin_password),
                is_active=True,
            )
            db.add(admin)
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info("Created organization %s (%s)", org.slug, org.id)
        return {"organization": org, "admin_user": admin}

    @staticmethod
    def update_organization(
        db: Session, actor: Identity, organization_id: int, changes: Dict[str, Any]
    ) -> Organization:
        OrganizationService._own(actor, organization_id)
        org = OrganizationService._get(db, organization_id)
        if not changes:
            raise ValidationError("No fields to update")
        if changes.get("is_active") is False:
            raise ValidationError("You cannot deactivate your own organization")
        for field in ORG_FIELDS:
            if field in changes and (changes[field] is not None or field not in ("name", "display_name")):
                setattr(org, field, changes[field])
        db.commit()
        db.refresh(org)
        return org

    @staticmethod
    def delete_organization(db: Session, actor: Identity, organization_id: int) -> Organization:
        """Delete another organization that has no konfis, and all of its data."""
        if organization_id == actor.organization_id:
            raise ValidationError("You cannot delete your own organization")
        org = OrganizationService._get(db, organization_id)

        konfi_count = OrganizationService._counts(db, org.id)["konfi_count"]
        if konfi_count:
            raise ResourceConflictError(
                f"Cannot delete organization with {konfi_count} konfis. Remove them first."
            )

        try:
            role_ids = [r.id for r in db.query(Role.id).filter(Role.organization_id == org.id).all()]
            user_ids = select(User.id).where(User.organization_id == org.id)
            db.query(UserJahrgangAssignment).filter(
                UserJahrgangAssignment.user_id.in_(user_ids)
            ).delete(synchronize_session=False)
            for model in (KonfiBadge, Badge, KonfiActivity, ActivityRequest, Activity, Setting, User, Jahrgang):
                db.query(model).filter(model.organization_id == org.id).delete(synchronize_session=False)
            if role_ids:
                db.query(RolePermission).filter(RolePermission.role_id.in_(role_ids)).delete(
                    synchronize_session=False
                )
            db.query(Role).filter(Role.organization_id == org.id).delete(synchronize_session=False)
            db.delete(org)
            db.commit()
        except Exception:
            db.rollback()
            raise
        return org

    @staticmethod
    def stats(db: Session, actor: Identity, organization_id: int) -> Dict[str, int]:
        OrganizationService._own(actor, organization_id)
        OrganizationService._get(db, organization_id)
        counts = OrganizationService._counts(db, organization_id)
        requests = db.query(ActivityRequest).filter(ActivityRequest.organization_id == organization_id)
        return {
            "user_count": counts["user_count"],
            "konfi_count": counts["konfi_count"],
            "activity_count": db.query(func.count(Activity.id))
            .filter(Activity.organization_id == organization_id)
            .scalar() or 0,
            "request_count": requests.count(),
            "pending_request_count": requests.filter(ActivityRequest.status == RequestStatus.pending).count(),
        }


organization_service = OrganizationService()
