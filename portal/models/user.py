"""
User Model with role-based access.
"""
from sqlalchemy import Column, Integer, String, Enum, DateTime, Boolean, ForeignKey, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from portal.database import Base


class UserRole(str, enum.Enum):
    """
    Portal roles, most to least privileged.

    - admin: full access, including email settings and user management
    - manager: creates inductions, assigns them and reviews results
    - user: staff member completing their own inductions
    """
    admin = "admin"
    manager = "manager"
    user = "user"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    # Accounts created by an administrator have no password until one is set
    hashed_password = Column(String, nullable=True)
    first_name = Column(String, nullable=False, default="")
    last_name = Column(String, nullable=False, default="")

    role = Column(Enum(UserRole), default=UserRole.user, nullable=False)
    position = Column(String, nullable=True)
    locations = Column(JSON, nullable=False, default=list)
    department_id = Column(Integer, ForeignKey("departments.id", ondelete="SET NULL"), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    department = relationship("Department", back_populates="members")
    inductions = relationship("UserInduction", back_populates="user", cascade="all, delete-orphan")
    qualifications = relationship("UserQualification", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User {self.email} ({self.role.value})>"

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.email

    @property
    def is_manager(self) -> bool:
        """Managers and admins can administer inductions."""
        return self.role in [UserRole.admin, UserRole.manager]
