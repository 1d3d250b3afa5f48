import logging
import re
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from portal.core.config import settings
from portal.database import get_db
from portal.models.department import Department
from portal.models.user import User
from portal.routers.auth_deps import get_current_user, require_manager
from portal.schemas.reference import DepartmentIn, DepartmentOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/departments", tags=["departments"])


def default_department_email(name: str) -> str:
    local_part = re.sub(r"\s+", ".", name.lower())
    return f"{local_part}@{settings.default_department_email_domain}"


def _get_or_404(db: Session, department_id: int) -> Department:
    department = db.query(Department).filter(Department.id == department_id).first()
    if not department:
        raise HTTPException(status_code=404, detail="Department not found")
    return department


@router.get("/", response_model=List[DepartmentOut])
def list_departments(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return db.query(Department).order_by(Department.name).all()


@router.post("/", response_model=DepartmentOut, status_code=status.HTTP_201_CREATED)
def create_department(payload: DepartmentIn, db: Session = Depends(get_db), current_user: User = Depends(require_manager())):
    department = Department(name=payload.name, email=payload.email or default_department_email(payload.name))
    db.add(department)
    db.commit()
    db.refresh(department)
    logger.info(f"Department {department.id} created", extra={"department_name": department.name})
    return department


@router.put("/{department_id}", response_model=DepartmentOut)
def update_department(
    department_id: int,
    payload: DepartmentIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager()),
):
    department = _get_or_404(db, department_id)
    department.name = payload.name
    if "email" in payload.model_fields_set:
        department.email = payload.email
    db.commit()
    db.refresh(department)
    return department


@router.delete("/{department_id}")
def delete_department(department_id: int, db: Session = Depends(get_db), current_user: User = Depends(require_manager())):
    department = _get_or_404(db, department_id)
    db.delete(department)
    db.commit()
    return {"message": "Department deleted successfully"}
