"""Activities, the konfi points ledger and konfi-submitted activity requests."""

import enum

from sqlalchemy import (
    Column, Integer, String, Text, Date, DateTime, Enum, ForeignKey, func,
)
from sqlalchemy.orm import relationship
from konfi.db.base import Base


class ActivityType(str, enum.Enum):
    gottesdienst = "gottesdienst"
    gemeinde = "gemeinde"


class RequestStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class Activity(Base):
    """Point-earning activity template defined by an organization."""
    __tablename__ = "activities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    points = Column(Integer, nullable=False)
    type = Column(Enum(ActivityType), nullable=False)
    category = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)


class KonfiActivity(Base):
    """Ledger row: points awarded to a konfi."""
    __tablename__ = "konfi_activities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    konfi_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    activity_id = Column(Integer, ForeignKey("activities.id"), nullable=True)
    activity_name = Column(String(255), nullable=False)
    points = Column(Integer, nullable=False)
    type = Column(Enum(ActivityType), nullable=False)
    awarded_by = Column(Integer, nullable=True)
    completed_date = Column(Date, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)


class ActivityRequest(Base):
    __tablename__ = "activity_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    konfi_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    activity_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    completed_date = Column(Date, nullable=True)
    category = Column(Enum(ActivityType), nullable=False, default=ActivityType.gemeinde)
    status = Column(Enum(RequestStatus), nullable=False, default=RequestStatus.pending, index=True)
    admin_comment = Column(Text, nullable=True)
    approved_by = Column(Integer, nullable=True)
    approved_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    konfi = relationship("User", foreign_keys=[konfi_id], lazy="joined")
