"""Jahrgang (confirmation cohort) and staff-to-Jahrgang assignments."""

from sqlalchemy import (
    Column, Integer, String, Boolean, Date, DateTime, ForeignKey, UniqueConstraint, func,
)
from sqlalchemy.orm import relationship
from konfi.db.base import Base


class Jahrgang(Base):
    __tablename__ = "jahrgaenge"
    __table_args__ = (UniqueConstraint("organization_id", "name", name="uq_jahrgang_org_name"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    confirmation_date = Column(Date, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)


class UserJahrgangAssignment(Base):
    """Grants a staff user view or edit access to one Jahrgang."""
    __tablename__ = "user_jahrgang_assignments"
    __table_args__ = (UniqueConstraint("user_id", "jahrgang_id", name="uq_user_jahrgang"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    jahrgang_id = Column(Integer, ForeignKey("jahrgaenge.id"), nullable=False, index=True)
    can_view = Column(Boolean, default=True, nullable=False)
    can_edit = Column(Boolean, default=False, nullable=False)
    assigned_by = Column(Integer, nullable=True)
    assigned_at = Column(DateTime, server_default=func.now(), nullable=False)

    jahrgang = relationship("Jahrgang", lazy="joined")
