from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from complaint_service.core.db import Base

class Admin(Base):
    __tablename__ = "admins"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    department = Column(String(100), nullable=False)
    employee_id = Column(String(100), nullable=False, unique=True, index=True)
    role = Column(String(50), nullable=False, default="admin")

    # Locality affinity used by tier-1 candidate selection
    branches = Column(String(100), nullable=True, index=True)
    semesters = Column(Integer, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True, index=True)
    max_case_load = Column(Integer, nullable=False, default=50)
    # Written only through the atomic caseload statements in the repository
    current_case_load = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    specializations = relationship(
        "AdminSpecialization",
        back_populates="admin",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def categories(self):
        return [spec.category for spec in self.specializations]

    @property
    def has_capacity(self) -> bool:
        return self.current_case_load < self.max_case_load


class AdminSpecialization(Base):
    """
    One complaint category an admin is qualified to handle.
    """
    __tablename__ = "admin_specializations"
    __table_args__ = (UniqueConstraint("admin_id", "category", name="uq_admin_specialization"),)

    id = Column(Integer, primary_key=True, index=True)
    admin_id = Column(Integer, ForeignKey("admins.id", ondelete="CASCADE"), nullable=False, index=True)
    category = Column(String(50), nullable=False, index=True)

    admin = relationship("Admin", back_populates="specializations")
