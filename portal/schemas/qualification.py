from datetime import datetime
from typing import Dict, Optional

from pydantic import Field

from portal.models.qualification import QualificationRequestStatus, QualificationStatus
from portal.schemas.base import CamelModel
from portal.schemas.user import UserSummary


class QualificationOut(CamelModel):
    id: int
    user_id: int
    qualification_type: str
    qualification_name: str
    issuer: Optional[str] = None
    issue_date: Optional[datetime] = None
    expiry_date: Optional[datetime] = None
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    status: QualificationStatus
    notes: Optional[str] = None
    reminders_sent: Dict[str, bool] = Field(default_factory=dict)
    uploaded_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class QualificationWithUser(QualificationOut):
    user: Optional[UserSummary] = None


class QualificationRequestIn(CamelModel):
    user_id: int
    qualification_type: str = Field(min_length=1)
    message: Optional[str] = None
    due_date: Optional[datetime] = None


class QualificationRequestOut(CamelModel):
    id: int
    user_id: int
    requested_by: Optional[int] = None
    qualification_type: str
    message: Optional[str] = None
    due_date: Optional[datetime] = None
    status: QualificationRequestStatus
    requested_at: Optional[datetime] = None
