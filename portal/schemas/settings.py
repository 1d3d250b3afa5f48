from datetime import datetime
from typing import Dict, List, Optional

from pydantic import EmailStr, Field

from portal.schemas.base import CamelModel


class EmailSettingsIn(CamelModel):
    default_from: Optional[EmailStr] = None
    default_reply_to: Optional[EmailStr] = None
    default_cc: List[EmailStr] = Field(default_factory=list)


class EmailSettingsOut(CamelModel):
    default_from: Optional[str] = None
    default_reply_to: Optional[str] = None
    default_cc: List[str] = Field(default_factory=list)
    updated_at: Optional[datetime] = None


class SiteContentUpdate(CamelModel):
    sections: Dict[str, str]
