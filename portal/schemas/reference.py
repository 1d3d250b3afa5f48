from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from portal.schemas.base import CamelModel


class _Named(CamelModel):
    name: str

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value


class LocationIn(_Named):
    name: str = Field(min_length=1, max_length=50)


class CertificateTypeIn(_Named):
    name: str = Field(min_length=1, max_length=50)


class PositionIn(_Named):
    name: str = Field(min_length=1, max_length=100)


class DepartmentIn(_Named):
    name: str = Field(min_length=1, max_length=100)
    email: Optional[EmailStr] = None


class NamedOut(CamelModel):
    id: int
    name: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DepartmentOut(NamedOut):
    email: Optional[str] = None
