"""Hierarchy gate for user create/update/delete/view requests."""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from konfi.core.exceptions import AuthorizationError, ResourceNotFoundError, StorageError
from konfi.core.hierarchy import can_create_role, can_manage_role
from konfi.core.security import Identity
from konfi.models.role import Role
from konfi.models.user import User

logger = logging.getLogger("konfi")


class HierarchyService:
    """Applies the role hierarchy to a single user-management request."""

    @staticmethod
    def _role_name(db: Session, role_id: int) -> Optional[str]:
        row = db.query(Role.name).filter(Role.id == role_id).first()
        return row.name if row else None

    @staticmethod
    def check_user_hierarchy(
        db: Session,
        actor: Identity,
        operation: str,
        target_user_id: Optional[int] = None,
        target_role_id: Optional[int] = None,
    ) -> None:
        """Raise unless ``actor`` may perform ``operation`` on the target.

        * ``create`` with a role id: the actor must be able to create that role.
        * any operation with a target user id: the user must exist in the
          actor's organization (404 otherwise, never 403) and the actor must
          be able to manage the user's current role.
        * ``update`` that moves the user to a different role additionally
          requires being able to create the new role.

        Requests with neither a user id nor a create role id pass through.

        Raises:
            AuthorizationError, ResourceNotFoundError, StorageError
        """
        actor_role = actor.role_name
        if not actor_role:
            raise AuthorizationError("User role not found")

        try:
            if operation == "create" and target_role_id is not None:
                role_name = HierarchyService._role_name(db, target_role_id)
                if role_name is None:
                    raise ResourceNotFoundError("Target role not found")
                if not can_create_role(actor_role, role_name):
                    raise AuthorizationError(
                        f"You cannot create users with the role '{role_name}'."
                    )
                return

            if target_user_id is None:
                return

            target = (
                db.query(User.id, User.role_id, Role.name.label("role_name"))
                .join(Role, User.role_id == Role.id)
                .filter(User.id == target_user_id, User.organization_id == actor.organization_id)
                .first()
            )
            if target is None:
                raise ResourceNotFoundError("Target user not found in your organization")
            if not can_manage_role(actor_role, target.role_name):
                raise AuthorizationError(
                    f"You cannot edit users with the role '{target.role_name}'."
                )

            if (
                operation == "update"
                and target_role_id is not None
                and target_role_id != target.role_id
            ):
                new_role_name = HierarchyService._role_name(db, target_role_id)
                if new_role_name is None:
                    raise ResourceNotFoundError("New role not found")
                if not can_create_role(actor_role, new_role_name):
                    raise AuthorizationError(
                        f"You cannot assign the role '{new_role_name}'."
                    )
        except SQLAlchemyError:
            logger.exception("Database error in user hierarchy check")
            raise StorageError("Database error")


hierarchy_service = HierarchyService()
