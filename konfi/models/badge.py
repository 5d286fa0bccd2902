"""Badge catalog and badges earned by konfis."""

from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, ForeignKey, JSON, UniqueConstraint, func,
)
from sqlalchemy.orm import relationship
from konfi.db.base import Base


class Badge(Base):
    """Organization badge awarded automatically once its criterion is met."""
    __tablename__ = "badges"

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    icon = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    criteria_type = Column(String(50), nullable=False)
    criteria_value = Column(Integer, nullable=False)
    criteria_extra = Column(JSON, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    is_hidden = Column(Boolean, default=False, nullable=False)
    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)


class KonfiBadge(Base):
    __tablename__ = "konfi_badges"
    __table_args__ = (UniqueConstraint("konfi_id", "badge_id", name="uq_konfi_badge"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    konfi_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    badge_id = Column(Integer, ForeignKey("badges.id"), nullable=False, index=True)
    earned_at = Column(DateTime, server_default=func.now(), nullable=False)

    badge = relationship("Badge", lazy="joined")
