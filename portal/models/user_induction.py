from sqlalchemy import Column, Integer, String, DateTime, Enum as SQLEnum, ForeignKey, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
import uuid
from portal.database import Base


class InductionStatus(str, enum.Enum):
    assigned = "assigned"
    in_progress = "in_progress"
    complete = "complete"
    overdue = "overdue"


def _new_id() -> str:
    return uuid.uuid4().hex


class UserInduction(Base):
    """
    One staff member's assignment of an induction.

    The primary key is a random hex string rather than an integer so that
    certificate IDs (CERT- plus the first six characters) are unguessable.
    """
    __tablename__ = "user_inductions"

    id = Column(String(32), primary_key=True, default=_new_id)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    induction_id = Column(Integer, ForeignKey("inductions.id", ondelete="SET NULL"), nullable=True, index=True)
    induction_name = Column(String, nullable=False, default="")

    status = Column(SQLEnum(InductionStatus), default=InductionStatus.assigned, nullable=False, index=True)
    assigned_at = Column(DateTime(timezone=True), server_default=func.now())
    available_from = Column(DateTime(timezone=True), nullable=True)
    due_date = Column(DateTime(timezone=True), nullable=True, index=True)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    overdue_at = Column(DateTime(timezone=True), nullable=True)

    progress = Column(JSON, nullable=True)
    answers = Column(JSON, nullable=True)
    feedback = Column(JSON, nullable=True)

    reminder_count = Column(Integer, default=0, nullable=False)
    reminder_sent_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="inductions")
    induction = relationship("Induction", back_populates="assignments")

    @property
    def certificate_id(self) -> str:
        return f"CERT-{self.id[:6].upper()}"
