import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from portal.models.induction import QuestionType
from portal.schemas.base import CamelModel


class AnswerOption(CamelModel):
    text: str = ""
    is_correct: bool = False


class Question(CamelModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    question: str = ""
    description: str = ""
    type: QuestionType = QuestionType.multichoice
    answers: List[AnswerOption] = Field(default_factory=list)
    is_required: bool = True
    hint: str = ""
    incorrect_answer_message: str = ""


class InductionCreate(CamelModel):
    name: str = Field(min_length=1)
    department: Optional[str] = None
    description: Optional[str] = None
    questions: List[Question] = Field(default_factory=list)
    is_draft: bool = False
    expiry_months: Optional[int] = Field(default=None, ge=1)


class InductionUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    department: Optional[str] = None
    description: Optional[str] = None
    questions: Optional[List[Question]] = None
    is_draft: Optional[bool] = None
    expiry_months: Optional[int] = Field(default=None, ge=1)


class InductionOut(CamelModel):
    id: int
    name: str
    department: Optional[str] = None
    description: Optional[str] = None
    questions: List[Question] = Field(default_factory=list)
    is_draft: bool
    expiry_months: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
