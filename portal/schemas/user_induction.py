from datetime import datetime
from typing import Any, List, Optional

from pydantic import Field, model_validator

from portal.models.user_induction import InductionStatus
from portal.schemas.base import CamelModel
from portal.schemas.induction import InductionOut
from portal.schemas.user import UserSummary


class BatchAssignmentItem(CamelModel):
    induction_id: Optional[int] = None
    due_date: Optional[datetime] = None
    available_from: Optional[datetime] = None


class AssignRequest(CamelModel):
    """Either a single ``inductionId`` or a batch of ``assignments`` for one user."""
    user_id: Optional[int] = None
    induction_id: Optional[int] = None
    due_date: Optional[datetime] = None
    available_from: Optional[datetime] = None
    assignments: Optional[List[BatchAssignmentItem]] = None


class UserInductionUpdate(CamelModel):
    status: Optional[InductionStatus] = None
    due_date: Optional[datetime] = None
    available_from: Optional[datetime] = None
    progress: Optional[Any] = None
    answers: Optional[Any] = None
    feedback: Optional[Any] = None

    @model_validator(mode="before")
    @classmethod
    def drop_empty_dates(cls, data: Any) -> Any:
        # Blank dates mean "leave unchanged"
        if isinstance(data, dict):
            data = {
                key: value for key, value in data.items()
                if not (key in ("dueDate", "due_date", "availableFrom", "available_from") and value in (None, ""))
            }
        return data


class UserInductionOut(CamelModel):
    id: str
    user_id: int
    induction_id: Optional[int] = None
    induction_name: str
    status: InductionStatus
    assigned_at: Optional[datetime] = None
    available_from: Optional[datetime] = None
    due_date: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    overdue_at: Optional[datetime] = None
    progress: Optional[Any] = None
    answers: Optional[Any] = None
    feedback: Optional[Any] = None
    reminder_count: int = 0
    reminder_sent_at: Optional[datetime] = None


class UserInductionDetail(UserInductionOut):
    induction: Optional[InductionOut] = None
    user: Optional[UserSummary] = None


class InductionResults(CamelModel):
    induction: InductionOut
    assignments: List[UserInductionDetail] = Field(default_factory=list)
    stats: dict
