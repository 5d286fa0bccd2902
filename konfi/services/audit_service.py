"""Audit service: append-only audit trail for logins and mutations."""

import json
from typing import Optional, Any
from sqlalchemy.orm import Session
from fastapi import Request

from konfi.models.audit_log import AuditLog


class AuditService:
    """Records immutable audit log entries."""

    @staticmethod
    def log(
        db: Session,
        organization_id: Optional[int],
        actor_id: Optional[int],
        actor_username: Optional[str],
        action: str,
        resource_type: str,
        resource_id: Optional[Any] = None,
        old_value: Optional[Any] = None,
        new_value: Optional[Any] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuditLog:
        """Write a single audit log record and commit it.

        Args:
            action: e.g. "user.login", "role.deleted", "request.approved"
            resource_type: user, role, organization, activity, request, setting
        """
        entry = AuditLog(
            organization_id=organization_id,
            actor_id=actor_id,
            actor_username=actor_username,
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id is not None else None,
            old_value_json=json.dumps(old_value, default=str) if old_value else None,
            new_value_json=json.dumps(new_value, default=str) if new_value else None,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        db.add(entry)
        db.commit()
        return entry

    @staticmethod
    def log_from_request(
        db: Session,
        request: Request,
        actor,
        action: str,
        resource_type: str,
        resource_id: Optional[Any] = None,
        old_value: Optional[Any] = None,
        new_value: Optional[Any] = None,
    ) -> AuditLog:
        """Write an audit entry for ``actor`` (an Identity or User), taking IP and user agent from the request."""
        ip = request.client.host if request.client else None
        ua = request.headers.get("user-agent", "")[:500]
        return AuditService.log(
            db=db,
            organization_id=actor.organization_id,
            actor_id=actor.id,
            actor_username=actor.username,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            old_value=old_value,
            new_value=new_value,
            ip_address=ip,
            user_agent=ua,
        )

    @staticmethod
    def query_logs(
        db: Session,
        organization_id: int,
        actor_id: Optional[int] = None,
        action: Optional[str] = None,
        resource_type: Optional[str] = None,
        page: int = 1,
        page_size: int = 50,
    ):
        """Query one organization's audit logs with filters and pagination."""
        query = db.query(AuditLog).filter(AuditLog.organization_id == organization_id)

        if actor_id:
            query = query.filter(AuditLog.actor_id == actor_id)
        if action:
            query = query.filter(AuditLog.action.ilike(f"%{action}%"))
        if resource_type:
            query = query.filter(AuditLog.resource_type == resource_type)

        total = query.count()
        logs = (
            query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )

        return {
            "logs": logs,
            "total": total,
            "page": page,
            "page_size": page_size,
        }


audit_service = AuditService()
