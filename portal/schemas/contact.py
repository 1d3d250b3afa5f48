from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import EmailStr, Field

from portal.models.contact_submission import ContactFormType, ContactStatus
from portal.schemas.base import CamelModel


class ContactSubmit(CamelModel):
    full_name: str = Field(min_length=1)
    email: EmailStr
    subject: str = Field(min_length=1)
    message: str = Field(min_length=1)
    contact_type: Optional[int] = None
    form_type: ContactFormType = ContactFormType.contact
    feedback_data: Optional[Dict[str, Any]] = None


class ContactStatusUpdate(CamelModel):
    status: ContactStatus


class ContactOut(CamelModel):
    id: int
    full_name: str
    email: str
    contact_type: Optional[int] = None
    subject: str
    message: str
    status: ContactStatus
    user_id: Optional[int] = None
    is_logged_in: bool
    form_type: ContactFormType
    feedback_data: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
