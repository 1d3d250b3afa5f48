# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import (
    user, department, location, position, certificate_type,
    induction, user_induction, certificate_log,
    email_settings, qualification, contact_submission, site_content
)

# Explicit class exports for cleaner imports
from .user import User, UserRole
from .department import Department
from .induction import Induction
from .user_induction import UserInduction, InductionStatus

__all__ = [
    "User",
    "UserRole",
    "Department",
    "Induction",
    "UserInduction",
    "InductionStatus",
]
