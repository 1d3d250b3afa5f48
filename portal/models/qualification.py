from sqlalchemy import Column, Integer, String, Text, DateTime, Enum as SQLEnum, ForeignKey, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from portal.database import Base


class QualificationStatus(str, enum.Enum):
    active = "active"
    expiring_soon = "expiring_soon"
    expired = "expired"


class QualificationRequestStatus(str, enum.Enum):
    pending = "pending"
    fulfilled = "fulfilled"


def _no_reminders_sent() -> dict:
    return {"twoMonths": False, "oneMonth": False, "expired": False}


class UserQualification(Base):
    __tablename__ = "user_qualifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    qualification_type = Column(String, nullable=False)
    qualification_name = Column(String, nullable=False)
    issuer = Column(String, nullable=True)
    issue_date = Column(DateTime(timezone=True), nullable=True)
    expiry_date = Column(DateTime(timezone=True), nullable=True, index=True)

    file_url = Column(String, nullable=True)
    file_name = Column(String, nullable=True)
    object_name = Column(String, nullable=True)

    status = Column(SQLEnum(QualificationStatus), default=QualificationStatus.active, nullable=False)
    notes = Column(Text, nullable=True)
    reminders_sent = Column(JSON, nullable=False, default=_no_reminders_sent)

    uploaded_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="qualifications")


class QualificationRequest(Base):
    """A manager asking a staff member to upload a qualification."""
    __tablename__ = "qualification_requests"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    requested_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    qualification_type = Column(String, nullable=False)
    message = Column(Text, nullable=True)
    due_date = Column(DateTime(timezone=True), nullable=True)
    status = Column(SQLEnum(QualificationRequestStatus), default=QualificationRequestStatus.pending, nullable=False)
    requested_at = Column(DateTime(timezone=True), server_default=func.now())
