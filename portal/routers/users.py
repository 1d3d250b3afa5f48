import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from portal.database import get_db
from portal.models.department import Department
from portal.models.user import User, UserRole
from portal.models.user_induction import UserInduction
from portal.routers.auth_deps import get_current_user, require_admin, require_manager
from portal.schemas.user import UserCreate, UserOut, UserUpdate
from portal.schemas.user_induction import UserInductionOut
from portal.services import auth as auth_service
from portal.services import notifications
from portal.services.mailer import get_mailer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _check_department(db: Session, department_id: Optional[int]) -> None:
    if department_id is not None and not db.query(Department).filter(Department.id == department_id).first():
        raise HTTPException(status_code=400, detail="Department not found")


def _check_role_grant(current_user: User, role: Optional[UserRole]) -> None:
    if role == UserRole.admin and current_user.role != UserRole.admin:
        raise HTTPException(status_code=403, detail="Only administrators can grant the admin role")


@router.get("/", response_model=List[UserOut])
def list_users(
    include_inactive: bool = Query(True, alias="includeInactive"),
    department_id: Optional[int] = Query(None, alias="departmentId"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager()),
):
    query = db.query(User)
    if not include_inactive:
        query = query.filter(User.is_active.is_(True))
    if department_id is not None:
        query = query.filter(User.department_id == department_id)
    return query.order_by(User.last_name, User.first_name).all()


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    if current_user.id != user_id and not current_user.is_manager:
        raise HTTPException(status_code=403, detail="Access denied")
    return _get_user_or_404(db, user_id)


@router.get("/{user_id}/inductions", response_model=List[UserInductionOut])
def get_assigned_inductions(user_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    if current_user.id != user_id and not current_user.is_manager:
        raise HTTPException(status_code=403, detail="Access denied")
    _get_user_or_404(db, user_id)
    return db.query(UserInduction).filter(UserInduction.user_id == user_id).all()


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    mailer=Depends(get_mailer),
    current_user: User = Depends(require_manager()),
):
    _check_role_grant(current_user, payload.role)
    _check_department(db, payload.department_id)
    if db.query(User).filter(User.email == payload.email).first():
        raise HTTPException(status_code=400, detail="A user with this email already exists")

    user = User(
        email=payload.email,
        first_name=payload.first_name.strip(),
        last_name=payload.last_name.strip(),
        hashed_password=auth_service.get_password_hash(payload.password) if payload.password else None,
        role=payload.role,
        position=payload.position,
        locations=payload.locations,
        department_id=payload.department_id,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.id} created by {current_user.id}", extra={"role": user.role.value})

    email_result = notifications.deliver(
        mailer, user.email, notifications.welcome_email(user), notifications.resolve_email_settings(db)
    )
    return {
        "message": "User created successfully",
        "user": UserOut.model_validate(user),
        "emailResult": email_result,
    }


@router.put("/{user_id}", response_model=UserOut)
def update_user(
    user_id: int,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager()),
):
    user = _get_user_or_404(db, user_id)
    updates = payload.model_dump(exclude_unset=True)
    _check_role_grant(current_user, updates.get("role"))
    if "department_id" in updates:
        _check_department(db, updates["department_id"])
    if "email" in updates and updates["email"] != user.email:
        if db.query(User).filter(User.email == updates["email"]).first():
            raise HTTPException(status_code=400, detail="A user with this email already exists")

    password = updates.pop("password", None)
    if password:
        user.hashed_password = auth_service.get_password_hash(password)
    for key, value in updates.items():
        if value is not None or key == "department_id":
            setattr(user, key, value)
    db.commit()
    db.refresh(user)
    return user


@router.delete("/{user_id}")
def delete_user(user_id: int, db: Session = Depends(get_db), current_user: User = Depends(require_admin())):
    user = _get_user_or_404(db, user_id)
    if user.id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    db.delete(user)
    db.commit()
    logger.info(f"User {user_id} deleted by {current_user.id}")
    return {"message": "User deleted successfully"}


@router.post("/{user_id}/deactivate", response_model=UserOut)
def deactivate_user(user_id: int, db: Session = Depends(get_db), current_user: User = Depends(require_manager())):
    user = _get_user_or_404(db, user_id)
    if user.id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot deactivate your own account")
    user.is_active = False
    db.commit()
    db.refresh(user)
    return user


@router.post("/{user_id}/reactivate", response_model=UserOut)
def reactivate_user(user_id: int, db: Session = Depends(get_db), current_user: User = Depends(require_manager())):
    user = _get_user_or_404(db, user_id)
    user.is_active = True
    db.commit()
    db.refresh(user)
    return user
