from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from portal.database import Base


class CertificateType(Base):
    """Catalogue of qualification kinds staff can upload (e.g. First Aid, RSA)."""
    __tablename__ = "certificate_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
