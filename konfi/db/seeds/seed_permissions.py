"""Seed the global permission catalog."""

from sqlalchemy.orm import Session

from konfi.core.permissions import CORE_PERMISSIONS
from konfi.models.role import Permission


def seed_permissions(db: Session) -> int:
    """Insert catalog permissions that don't exist yet. Returns how many were added."""
    existing = {name for (name,) in db.query(Permission.name).all()}
    added = 0
    for name, display_name, module in CORE_PERMISSIONS:
        if name not in existing:
            db.add(Permission(
                name=name,
                display_name=display_name,
                description=display_name,
                module=module,
                is_system_permission=True,
            ))
            added += 1
    db.commit()
    return added
