from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Text, JSON, Index
from sqlalchemy.orm import relationship
from complaint_service.core.db import Base

class Complaint(Base):
    __tablename__ = "complaints"
    __table_args__ = (
        Index("ix_complaints_category_status", "category", "status"),
        Index("ix_complaints_assigned_to_status", "assigned_to", "status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    token = Column(String(6), nullable=False, unique=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    category = Column(String(50), nullable=False, default="general")
    priority = Column(String(20), nullable=False, default="normal")
    status = Column(String(50), nullable=False, default="received", index=True)
    department = Column(String(100), nullable=True)

    # name, roll_no, department, semester, phone, email; null for anonymous complaints
    student_info = Column(JSON, nullable=True)
    is_anonymous = Column(Boolean, nullable=False, default=False)
    identity_revealed = Column(Boolean, nullable=False, default=False)
    revealed_by = Column(Integer, ForeignKey("admins.id"), nullable=True)
    revealed_at = Column(DateTime, nullable=True)

    assigned_to = Column(Integer, ForeignKey("admins.id"), nullable=True)
    assigned_by = Column(Integer, ForeignKey("admins.id"), nullable=True)
    assignment_type = Column(String(20), nullable=False, default="auto")
    assigned_at = Column(DateTime, nullable=True)

    resolution = Column(Text, nullable=True)
    resolved_at = Column(DateTime, nullable=True)
    resolved_by = Column(Integer, ForeignKey("admins.id"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # message thread stored as structured JSON array
    messages = Column(JSON, nullable=False, default=list)

    forward_history = relationship(
        "ComplaintForward",
        back_populates="complaint",
        order_by="ComplaintForward.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def add_message(self, body: str, sender: str = "admin", sender_name: str = "Admin", visible: bool = True):
        # Reassign instead of mutating in place so the JSON column is flagged dirty
        thread = list(self.messages) if self.messages is not None else []
        thread.append({
            "body": body,
            "sender": sender,
            "sender_name": sender_name,
            "visible": visible,
            "created_at": datetime.utcnow().isoformat(),
        })
        self.messages = thread


class ComplaintForward(Base):
    """
    Append-only record of a complaint being handed from one admin to another.
    """
    __tablename__ = "complaint_forwards"

    id = Column(Integer, primary_key=True, index=True)
    complaint_id = Column(Integer, ForeignKey("complaints.id", ondelete="CASCADE"), nullable=False, index=True)
    from_admin_id = Column(Integer, ForeignKey("admins.id"), nullable=False)
    to_admin_id = Column(Integer, ForeignKey("admins.id"), nullable=False)
    reason = Column(Text, nullable=True)
    forwarded_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    complaint = relationship("Complaint", back_populates="forward_history")
