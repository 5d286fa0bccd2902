"""Role hierarchy table and authorization predicates.

Authority between two users is decided only by role *names*. Role ids,
organizations and custom role definitions play no part here; anything not
in ``ROLE_HIERARCHY`` sits at level 0.
"""

from types import MappingProxyType
from typing import Any, Iterable, List, Mapping, Optional

ORG_ADMIN = "org_admin"
ADMIN = "admin"
TEAMER = "teamer"
KONFI = "konfi"

ROLE_HIERARCHY: Mapping[str, int] = MappingProxyType({
    ORG_ADMIN: 4,
    ADMIN: 3,
    TEAMER: 2,
    KONFI: 1,
})

SYSTEM_ROLES = tuple(ROLE_HIERARCHY)


def get_role_level(role_name: Optional[str]) -> int:
    """Level of ``role_name``; unknown or missing names are 0."""
    if not role_name:
        return 0
    return ROLE_HIERARCHY.get(role_name, 0)


def has_minimum_level(role_name: Optional[str], min_level: int) -> bool:
    return get_role_level(role_name) >= min_level


def can_manage_role(actor_role: Optional[str], target_role: Optional[str]) -> bool:
    """Whether a user with ``actor_role`` may view/edit/delete a user with ``target_role``.

    The three named roles short-circuit before the numeric comparison:

    * ``org_admin`` manages everyone, including other org admins.
    * ``admin`` manages everyone except ``org_admin`` and ``admin``.
    * ``teamer`` manages everyone except ``org_admin``, ``admin`` and ``teamer``.

    Everything else falls back to a strict level comparison, so two
    custom roles (both level 0) can never manage one another.
    """
    if actor_role == ORG_ADMIN:
        return True
    if actor_role == ADMIN:
        return target_role not in (ORG_ADMIN, ADMIN)
    if actor_role == TEAMER:
        return target_role not in (ORG_ADMIN, ADMIN, TEAMER)
    return get_role_level(actor_role) > get_role_level(target_role)


def can_create_role(actor_role: Optional[str], target_role: Optional[str]) -> bool:
    """Whether ``actor_role`` may create or assign a user with ``target_role``."""
    return can_manage_role(actor_role, target_role)


def _field(entry: Any, name: str) -> Any:
    if isinstance(entry, Mapping):
        return entry.get(name)
    return getattr(entry, name, None)


def filter_users_by_hierarchy(users: Iterable[Any], actor_role: Optional[str]) -> List[Any]:
    """Users (mappings or objects with ``role_name``) the actor may manage."""
    return [u for u in users if can_manage_role(actor_role, _field(u, "role_name"))]


def filter_roles_by_hierarchy(roles: Iterable[Any], actor_role: Optional[str]) -> List[Any]:
    """Roles (mappings or objects with ``name``) the actor may manage."""
    return [r for r in roles if can_manage_role(actor_role, _field(r, "name"))]
