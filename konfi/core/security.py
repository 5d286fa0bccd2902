"""JWT authentication, permission checks and the user hierarchy gate."""

import bcrypt
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import FrozenSet, Optional, Set, Tuple

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from konfi.core.config import settings
from konfi.core.exceptions import AuthorizationError, ValidationError
from konfi.core.hierarchy import KONFI, ORG_ADMIN
from konfi.db.session import get_db

# JWT bearer scheme
security_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class JahrgangAccess:
    id: int
    name: str
    can_view: bool = True
    can_edit: bool = False


@dataclass(frozen=True)
class Identity:
    """The authenticated actor, loaded fresh from the database per request."""

    id: int
    organization_id: int
    username: str
    display_name: str
    role_id: int
    role_name: Optional[str]
    role_display_name: Optional[str] = None
    organization_name: Optional[str] = None
    permissions: FrozenSet[str] = field(default_factory=frozenset)
    assigned_jahrgaenge: Tuple[JahrgangAccess, ...] = ()

    @property
    def type(self) -> str:
        return "konfi" if self.role_name == KONFI else "admin"

    @property
    def is_org_admin(self) -> bool:
        return self.role_name == ORG_ADMIN

    def has_permission(self, name: str) -> bool:
        return self.is_org_admin or name in self.permissions

    def viewable_jahrgang_ids(self) -> Optional[Set[int]]:
        """Ids of the Jahrgaenge this actor may see; ``None`` means all of them."""
        if self.is_org_admin:
            return None
        return {j.id for j in self.assigned_jahrgaenge if j.can_view}

    def check_jahrgang_access(self, jahrgang_id: int, require_edit: bool = False) -> None:
        if self.is_org_admin:
            return
        assigned = next((j for j in self.assigned_jahrgaenge if j.id == jahrgang_id), None)
        if assigned is None:
            raise AuthorizationError("No access to this jahrgang")
        if require_edit and not assigned.can_edit:
            raise AuthorizationError("No edit access to this jahrgang")
        if not assigned.can_view:
            raise AuthorizationError("No view access to this jahrgang")


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))


def token_lifetime(role_name: Optional[str]) -> timedelta:
    """Konfi sessions are short-lived, staff sessions last two weeks."""
    if role_name == KONFI:
        return timedelta(hours=settings.KONFI_TOKEN_EXPIRY_HOURS)
    return timedelta(days=settings.STAFF_TOKEN_EXPIRY_DAYS)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(days=settings.STAFF_TOKEN_EXPIRY_DAYS)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT token."""
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
    db: Session = Depends(get_db),
) -> Identity:
    """Resolve the bearer token to an active user of an active organization."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token provided",
            headers={"WWW-Authenticate": "Bearer"},
        )
    payload = decode_token(credentials.credentials)
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    from konfi.services.auth_service import auth_service

    return auth_service.load_identity(db, user_id)


class RequirePermission:
    """Dependency that requires a named permission. Org admins always pass."""

    def __init__(self, permission: str):
        self.permission = permission

    async def __call__(self, identity: Identity = Depends(get_current_identity)) -> Identity:
        if not identity.has_permission(self.permission):
            raise AuthorizationError(f"Insufficient permissions: '{self.permission}' required")
        return identity


class RequireUserHierarchy:
    """Dependency gating user mutations by the role hierarchy.

    The target user id comes from the ``user_id`` path parameter and the
    requested role from ``role_id`` in the JSON body. A ``role_id`` that is
    present but not a JSON integer is rejected with 400.
    """

    def __init__(self, operation: str):
        if operation not in ("create", "update", "delete", "view"):
            raise ValueError(f"Unknown hierarchy operation: {operation}")
        self.operation = operation

    async def __call__(
        self,
        request: Request,
        identity: Identity = Depends(get_current_identity),
        db: Session = Depends(get_db),
    ) -> Identity:
        from konfi.services.hierarchy_service import hierarchy_service

        target_user_id = _as_int(request.path_params.get("user_id"))
        target_role_id = None
        if request.method in ("POST", "PUT", "PATCH"):
            try:
                body = await request.json()
            except ValueError:
                body = None
            if isinstance(body, dict) and body.get("role_id") is not None:
                target_role_id = body["role_id"]
                if isinstance(target_role_id, bool) or not isinstance(target_role_id, int):
                    raise ValidationError("role_id must be an integer")

        hierarchy_service.check_user_hierarchy(
            db, identity, self.operation, target_user_id, target_role_id,
        )
        return identity


def _as_int(value) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class RequireJahrgangAccess:
    """Dependency requiring access to the Jahrgang named by the ``jahrgang_id`` path parameter."""

    def __init__(self, require_edit: bool = False):
        self.require_edit = require_edit

    async def __call__(
        self,
        jahrgang_id: int,
        identity: Identity = Depends(get_current_identity),
    ) -> Identity:
        identity.check_jahrgang_access(jahrgang_id, self.require_edit)
        return identity
