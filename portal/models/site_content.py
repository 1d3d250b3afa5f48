from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.sql import func
from portal.database import Base

DEFAULT_SECTIONS = {
    "about": "Welcome to the staff induction portal.",
    "contact": "Get in touch with the relevant department using the form below.",
}


class SiteContent(Base):
    __tablename__ = "site_content"

    section = Column(String, primary_key=True)
    text = Column(Text, nullable=False, default="")
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
