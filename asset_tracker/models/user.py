from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from ..core.lifecycle import UserRole
from ..db.session import Base
from ._common import utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    employee_id = Column(String(50), nullable=False, unique=True)
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=False)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=False)
    role = Column(String(16), nullable=False, default=UserRole.USER.value)
    password_hash = Column(String(255), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    location = relationship("Location", lazy="joined")
    department = relationship("Department", lazy="joined")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @property
    def department_name(self) -> str | None:
        return self.department.name if self.department else None

    @property
    def location_name(self) -> str | None:
        return self.location.name if self.location else None
