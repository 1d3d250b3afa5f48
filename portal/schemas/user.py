from datetime import datetime
from typing import List, Optional

from pydantic import EmailStr, Field

from portal.models.user import UserRole
from portal.schemas.base import CamelModel


class UserCreate(CamelModel):
    email: EmailStr
    first_name: str = Field(min_length=1)
    last_name: str = ""
    password: Optional[str] = Field(default=None, min_length=8)
    role: UserRole = UserRole.user
    position: Optional[str] = None
    locations: List[str] = Field(default_factory=list)
    department_id: Optional[int] = None


class UserUpdate(CamelModel):
    email: Optional[EmailStr] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    password: Optional[str] = Field(default=None, min_length=8)
    role: Optional[UserRole] = None
    position: Optional[str] = None
    locations: Optional[List[str]] = None
    department_id: Optional[int] = None


class UserOut(CamelModel):
    id: int
    email: str
    first_name: str
    last_name: str
    display_name: str
    role: UserRole
    position: Optional[str] = None
    locations: List[str] = Field(default_factory=list)
    department_id: Optional[int] = None
    is_active: bool
    created_at: Optional[datetime] = None


class UserSummary(CamelModel):
    id: int
    email: str
    display_name: str
