from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, Enum as SQLEnum, ForeignKey, JSON
from sqlalchemy.sql import func
import enum
from portal.database import Base


class ContactStatus(str, enum.Enum):
    new = "new"
    in_progress = "in_progress"
    resolved = "resolved"


class ContactFormType(str, enum.Enum):
    contact = "contact"
    feedback = "feedback"


class ContactSubmission(Base):
    __tablename__ = "contact_submissions"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    # Department the message is routed to; null goes to the admin inbox
    contact_type = Column(Integer, ForeignKey("departments.id", ondelete="SET NULL"), nullable=True)
    subject = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    status = Column(SQLEnum(ContactStatus), default=ContactStatus.new, nullable=False, index=True)

    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    is_logged_in = Column(Boolean, default=False, nullable=False)
    form_type = Column(SQLEnum(ContactFormType), default=ContactFormType.contact, nullable=False)
    feedback_data = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
