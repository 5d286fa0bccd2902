"""Seed the bootstrap organization and its first org admin."""

from sqlalchemy.orm import Session

from konfi.core.config import settings
from konfi.models.organization import Organization
from konfi.services.organization_service import organization_service


def seed_organization(db: Session) -> bool:
    """Create the default organization unless its slug is taken. Returns True if created."""
    existing = db.query(Organization).filter(Organization.slug == settings.DEFAULT_ORG_SLUG).first()
    if existing:
        return False

    organization_service.create_organization(
        db,
        name=settings.DEFAULT_ORG_NAME,
        slug=settings.DEFAULT_ORG_SLUG,
        display_name=settings.DEFAULT_ORG_DISPLAY_NAME,
        admin_username=settings.DEFAULT_ADMIN_USERNAME,
        admin_password=settings.DEFAULT_ADMIN_PASSWORD,
        admin_display_name=settings.DEFAULT_ADMIN_DISPLAY_NAME,
    )
    return True
