"""
Induction templates.

An induction is an ordered questionnaire. Questions are stored as a JSON list;
each entry carries its own id, prompt, type and (for choice questions) the
candidate answers with their correctness flags.
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from portal.database import Base


class QuestionType(str, enum.Enum):
    multichoice = "multichoice"
    true_false = "true_false"
    certificate = "certificate"
    choose_one = "choose_one"
    yes_no = "yes_no"
    short_answer = "short_answer"
    information = "information"


class Induction(Base):
    __tablename__ = "inductions"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    department = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    questions = Column(JSON, nullable=False, default=list)
    is_draft = Column(Boolean, default=False, nullable=False)
    # How long a completion stays valid; null means it never expires
    expiry_months = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    assignments = relationship("UserInduction", back_populates="induction")

    def __repr__(self):
        return f"<Induction {self.name}>"
