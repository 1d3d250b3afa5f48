from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from portal.database import Base


class EmailSettings(Base):
    """Single-row table; values override the mail defaults from the environment."""
    __tablename__ = "email_settings"

    id = Column(Integer, primary_key=True, default=1)
    default_from = Column(String, nullable=True)
    default_reply_to = Column(String, nullable=True)
    default_cc = Column(JSON, nullable=False, default=list)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
