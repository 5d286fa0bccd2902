"""Pydantic schemas for API request/response serialization."""

from pydantic import BaseModel, EmailStr, Field, StrictInt
from typing import Optional, List, Dict, Any
from datetime import date, datetime

from konfi.models.activity import ActivityType, RequestStatus


# ---- Common ----
class MessageResponse(BaseModel):
    message: str


class CreatedResponse(BaseModel):
    id: int
    message: str


# ---- Auth ----
class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

class LoginResponse(BaseModel):
    token: str
    user: Dict[str, Any]

class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)

class IdentityOut(BaseModel):
    id: int
    username: str
    display_name: str
    type: str
    role_name: Optional[str] = None
    role_display_name: Optional[str] = None
    organization_id: int
    organization_name: Optional[str] = None
    permissions: List[str] = []
    assigned_jahrgaenge: List[Dict[str, Any]] = []


# ---- User ----
class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=100)
    display_name: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=6)
    role_id: StrictInt
    email: Optional[EmailStr] = None
    role_title: Optional[str] = None
    jahrgang_id: Optional[StrictInt] = None

class UserCreated(BaseModel):
    id: int
    message: str
    username: str
    display_name: str

class UserUpdate(BaseModel):
    username: Optional[str] = Field(None, min_length=3, max_length=100)
    display_name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    role_title: Optional[str] = None
    role_id: Optional[StrictInt] = None
    jahrgang_id: Optional[StrictInt] = None
    is_active: Optional[bool] = None
    password: Optional[str] = Field(None, min_length=6)

class PasswordReset(BaseModel):
    password: str = Field(..., min_length=6)

class UserOut(BaseModel):
    id: int
    username: str
    display_name: str
    email: Optional[str] = None
    role_title: Optional[str] = None
    role_id: int
    role_name: Optional[str] = None
    role_display_name: Optional[str] = None
    jahrgang_id: Optional[int] = None
    jahrgang_name: Optional[str] = None
    is_active: bool = True
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    can_edit: bool = False


# ---- Role / Permission ----
class PermissionGrant(BaseModel):
    permission_id: int
    granted: bool = True

class RoleCreate(BaseModel):
    name: Optional[str] = Field(None, max_length=50)
    display_name: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    permissions: List[PermissionGrant] = []

class RoleUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=50)
    display_name: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    is_active: Optional[bool] = None
    permissions: Optional[List[PermissionGrant]] = None

class RolePermissionsUpdate(BaseModel):
    permission_ids: List[int]

class RoleOut(BaseModel):
    id: int
    name: str
    display_name: str
    description: Optional[str] = None
    is_system_role: bool
    is_active: bool
    user_count: int = 0
    permission_count: int = 0
    can_edit: bool = False
    created_at: Optional[datetime] = None

class PermissionOut(BaseModel):
    id: int
    name: str
    display_name: str
    description: Optional[str] = None
    module: str
    is_system_permission: bool = True

    class Config:
        from_attributes = True

class RolePermissionOut(PermissionOut):
    granted: bool = False

class RoleDetail(RoleOut):
    permissions: List[RolePermissionOut] = []


# ---- Organization ----
class OrganizationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=2, max_length=100, pattern=r"^[a-z0-9-]+$")
    display_name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = None
    address: Optional[str] = None
    website_url: Optional[str] = None
    admin_username: str = Field(..., min_length=3, max_length=100)
    admin_password: str = Field(..., min_length=6)
    admin_display_name: str = Field(..., min_length=1, max_length=255)
    admin_email: Optional[EmailStr] = None

class OrganizationUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    display_name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = None
    address: Optional[str] = None
    website_url: Optional[str] = None
    is_active: Optional[bool] = None

class OrganizationOut(BaseModel):
    id: int
    name: str
    slug: str
    display_name: str
    description: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    address: Optional[str] = None
    website_url: Optional[str] = None
    is_active: bool
    user_count: int = 0
    konfi_count: int = 0
    created_at: Optional[datetime] = None

class OrganizationStats(BaseModel):
    user_count: int
    konfi_count: int
    activity_count: int
    request_count: int
    pending_request_count: int


# ---- Activity ----
class ActivityCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    points: int = Field(..., gt=0)
    type: ActivityType
    category: Optional[str] = None

class ActivityUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    points: Optional[int] = Field(None, gt=0)
    type: Optional[ActivityType] = None
    category: Optional[str] = None

class ActivityOut(BaseModel):
    id: int
    name: str
    points: int
    type: ActivityType
    category: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ActivityAssign(BaseModel):
    konfi_id: int
    completed_date: Optional[date] = None

class KonfiPoints(BaseModel):
    konfi_id: int
    gottesdienst: int
    gemeinde: int
    total: int
    target_gottesdienst: int
    target_gemeinde: int

class ActivityAssigned(CreatedResponse):
    new_badges: List[str] = []


# ---- Jahrgang ----
class JahrgangCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    confirmation_date: Optional[date] = None

class JahrgangUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    confirmation_date: Optional[date] = None

class JahrgangOut(BaseModel):
    id: int
    name: str
    confirmation_date: Optional[date] = None
    konfi_count: int = 0
    created_at: Optional[datetime] = None

class JahrgangDetail(JahrgangOut):
    konfis: List[Dict[str, Any]] = []

class JahrgangAssignment(BaseModel):
    jahrgang_id: StrictInt
    can_view: bool = True
    can_edit: bool = False

class JahrgangAssignmentsUpdate(BaseModel):
    jahrgang_assignments: List[JahrgangAssignment]

class JahrgangAssignmentsResult(BaseModel):
    message: str
    assignments_count: int

class UserJahrgangOut(BaseModel):
    jahrgang_id: int
    jahrgang_name: str
    confirmation_date: Optional[date] = None
    can_view: bool
    can_edit: bool
    assigned_at: Optional[datetime] = None
    assigned_by_name: Optional[str] = None


# ---- Badge ----
class BadgeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    icon: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    criteria_type: str
    criteria_value: int = Field(..., gt=0)
    criteria_extra: Optional[Dict[str, Any]] = None
    is_hidden: bool = False

class BadgeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    icon: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    criteria_type: Optional[str] = None
    criteria_value: Optional[int] = Field(None, gt=0)
    criteria_extra: Optional[Dict[str, Any]] = None
    is_active: Optional[bool] = None
    is_hidden: Optional[bool] = None

class BadgeOut(BaseModel):
    id: int
    name: str
    icon: str
    description: Optional[str] = None
    criteria_type: str
    criteria_value: int
    criteria_extra: Optional[Dict[str, Any]] = None
    is_active: bool
    is_hidden: bool
    earned_count: int = 0
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class EarnedBadgeOut(BadgeOut):
    earned_at: Optional[datetime] = None

class KonfiBadges(BaseModel):
    earned: List[EarnedBadgeOut]
    available: List[BadgeOut]
    progress: str


# ---- Activity request ----
class ActivityRequestCreate(BaseModel):
    konfi_id: Optional[int] = None
    activity_name: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    completed_date: Optional[date] = None
    category: ActivityType = ActivityType.gemeinde

class ActivityRequestDecision(BaseModel):
    status: RequestStatus
    admin_comment: Optional[str] = None
    points: int = Field(1, gt=0)

class ActivityRequestOut(BaseModel):
    id: int
    konfi_id: int
    konfi_name: Optional[str] = None
    activity_name: str
    description: str
    completed_date: Optional[date] = None
    category: ActivityType
    status: RequestStatus
    admin_comment: Optional[str] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


# ---- Settings ----
class TargetSettingsUpdate(BaseModel):
    target_gottesdienst: Optional[int] = Field(None, ge=0)
    target_gemeinde: Optional[int] = Field(None, ge=0)

class SettingValue(BaseModel):
    value: str = Field(..., max_length=500)


# ---- Audit ----
class AuditLogOut(BaseModel):
    id: int
    actor_id: Optional[int] = None
    actor_username: Optional[str] = None
    action: str
    resource_type: str
    resource_id: Optional[str] = None
    old_value_json: Optional[str] = None
    new_value_json: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
