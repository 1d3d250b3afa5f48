from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from portal.database import Base


class CertificateLog(Base):
    """Audit trail of issued certificates, also the first stop for verification."""
    __tablename__ = "certificate_logs"

    id = Column(Integer, primary_key=True, index=True)
    certificate_id = Column(String, nullable=False, index=True)
    user_induction_id = Column(String(32), ForeignKey("user_inductions.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    induction_id = Column(Integer, nullable=True)
    generated_at = Column(DateTime(timezone=True), server_default=func.now())
    ip_address = Column(String, nullable=True)
