from datetime import date, datetime, timezone
from typing import Optional, Union


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; everything stored is UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_long_date(value: Optional[Union[datetime, date]], missing: str = "Not set") -> str:
    """Render as '5 March 2025'."""
    if value is None:
        return missing
    return f"{value.day} {value.strftime('%B %Y')}"


def format_certificate_date(value: Optional[Union[datetime, date]]) -> str:
    """Render as 'March 5, 2025'."""
    value = value or utcnow()
    return f"{value.strftime('%B')} {value.day}, {value.year}"
