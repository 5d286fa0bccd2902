"""Audit log model: append-only."""

from sqlalchemy import Column, Integer, String, Text, DateTime, func
from konfi.db.base import Base


class AuditLog(Base):
    """Immutable audit trail for logins and mutations.

    Rows are only ever inserted; nothing in the application updates or
    deletes them.
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(Integer, nullable=True, index=True)
    actor_id = Column(Integer, nullable=True)
    actor_username = Column(String(100), nullable=True)
    action = Column(String(100), nullable=False, index=True)  # e.g. "user.created"
    resource_type = Column(String(50), nullable=False, index=True)  # user, role, activity, ...
    resource_id = Column(String(100), nullable=True)
    old_value_json = Column(Text, nullable=True)
    new_value_json = Column(Text, nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False, index=True)
