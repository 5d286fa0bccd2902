"""Models package: import all models so metadata.create_all sees every table."""

from konfi.models.organization import Organization
from konfi.models.role import Role, Permission, RolePermission
from konfi.models.jahrgang import Jahrgang, UserJahrgangAssignment
from konfi.models.user import User
from konfi.models.activity import (
    Activity, ActivityRequest, ActivityType, KonfiActivity, RequestStatus,
)
from konfi.models.badge import Badge, KonfiBadge
from konfi.models.setting import Setting
from konfi.models.audit_log import AuditLog

__all__ = [
    "Organization", "Role", "Permission", "RolePermission", "User",
    "Jahrgang", "UserJahrgangAssignment",
    "Activity", "ActivityRequest", "ActivityType", "KonfiActivity", "RequestStatus",
    "Badge", "KonfiBadge",
    "Setting", "AuditLog",
]
