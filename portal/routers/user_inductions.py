import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from portal.database import get_db
from portal.models.induction import Induction
from portal.models.user import User
from portal.models.user_induction import UserInduction
from portal.routers.auth_deps import ensure_self_or_manager, get_current_user, require_admin, require_manager
from portal.schemas.induction import InductionOut
from portal.schemas.user_induction import (
    AssignRequest, InductionResults, UserInductionDetail, UserInductionUpdate
)
from portal.services import induction_lifecycle, reports
from portal.services.mailer import get_mailer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/user-inductions", tags=["user-inductions"])

# Fields staff may change on their own assignment
SELF_SERVICE_FIELDS = {"status", "progress", "answers", "feedback"}


def _get_record_or_404(db: Session, user_induction_id: str) -> UserInduction:
    record = db.query(UserInduction).filter(UserInduction.id == user_induction_id).first()
    if not record:
        raise HTTPException(status_code=404, detail="User Induction not found")
    return record


def _detail(record: UserInduction, with_user: bool = False) -> UserInductionDetail:
    detail = UserInductionDetail.model_validate(record)
    if not with_user:
        detail.user = None
    return detail


def _records_for_induction(db: Session, induction_id: int) -> List[UserInduction]:
    return db.query(UserInduction).filter(UserInduction.induction_id == induction_id).all()


@router.post("/assign")
def assign_induction(
    payload: AssignRequest,
    db: Session = Depends(get_db),
    mailer=Depends(get_mailer),
    current_user: User = Depends(require_manager()),
):
    if payload.assignments is not None:
        if not payload.user_id:
            raise HTTPException(status_code=400, detail="User ID and assignments array are required")
        items = [item.model_dump(by_alias=True) for item in payload.assignments]
        return induction_lifecycle.assign_batch(db, mailer, payload.user_id, items)

    if not payload.user_id or not payload.induction_id:
        raise HTTPException(status_code=400, detail="User ID and Induction ID are required")
    return induction_lifecycle.assign_induction(
        db, mailer, payload.user_id, payload.induction_id,
        due_date=payload.due_date, available_from=payload.available_from,
    )


@router.get("/user/{user_id}", response_model=List[UserInductionDetail])
def get_user_inductions(user_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    ensure_self_or_manager(current_user, user_id)
    records = (
        db.query(UserInduction)
        .filter(UserInduction.user_id == user_id)
        .order_by(UserInduction.assigned_at.desc())
        .all()
    )
    return [_detail(record) for record in records]


@router.get("/by-induction", response_model=List[UserInductionDetail])
def get_users_by_induction(
    induction_id: int = Query(..., alias="inductionId"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager()),
):
    return [_detail(record, with_user=True) for record in _records_for_induction(db, induction_id)]


@router.get("/stats")
def get_induction_stats(
    induction_id: int = Query(..., alias="inductionId"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager()),
):
    stats = reports.compute_stats(_records_for_induction(db, induction_id))
    return {key: stats[key] for key in ("total", "assigned", "inProgress", "completed", "overdue")}


@router.get("/results-stats")
def get_results_stats(
    induction_id: int = Query(..., alias="inductionId"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager()),
):
    return reports.compute_stats(_records_for_induction(db, induction_id))


@router.get("/results/{induction_id}", response_model=InductionResults)
def get_induction_results(induction_id: int, db: Session = Depends(get_db), current_user: User = Depends(require_manager())):
    induction = db.query(Induction).filter(Induction.id == induction_id).first()
    if not induction:
        raise HTTPException(status_code=404, detail="Induction not found")
    records = _records_for_induction(db, induction_id)
    return InductionResults(
        induction=InductionOut.model_validate(induction),
        assignments=[_detail(record, with_user=True) for record in records],
        stats=reports.compute_stats(records),
    )


@router.get("/{user_induction_id}", response_model=UserInductionDetail)
def get_user_induction(user_induction_id: str, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    record = _get_record_or_404(db, user_induction_id)
    ensure_self_or_manager(current_user, record.user_id)
    return _detail(record)


@router.get("/{user_induction_id}/results", response_model=UserInductionDetail)
def get_user_induction_results(
    user_induction_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    record = _get_record_or_404(db, user_induction_id)
    ensure_self_or_manager(current_user, record.user_id)
    return _detail(record, with_user=True)


@router.put("/{user_induction_id}")
def update_user_induction(
    user_induction_id: str,
    payload: UserInductionUpdate,
    db: Session = Depends(get_db),
    mailer=Depends(get_mailer),
    current_user: User = Depends(get_current_user),
):
    record = _get_record_or_404(db, user_induction_id)
    updates = payload.model_dump(exclude_unset=True, by_alias=True)

    if not current_user.is_manager:
        if record.user_id != current_user.id:
            raise HTTPException(status_code=403, detail="Access denied. You can only update your own inductions.")
        restricted = set(updates) - SELF_SERVICE_FIELDS
        if restricted:
            raise HTTPException(
                status_code=403,
                detail=f"Only managers can change: {', '.join(sorted(restricted))}",
            )

    return induction_lifecycle.update_user_induction(db, mailer, record, updates)


@router.delete("/{user_induction_id}")
def delete_user_induction(
    user_induction_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin()),
):
    record = _get_record_or_404(db, user_induction_id)
    db.delete(record)
    db.commit()
    logger.info(f"User induction {user_induction_id} deleted by {current_user.id}")
    return {"message": "User Induction deleted successfully"}


@router.post("/{user_induction_id}/reminder")
def send_reminder(
    user_induction_id: str,
    db: Session = Depends(get_db),
    mailer=Depends(get_mailer),
    current_user: User = Depends(require_manager()),
):
    record = _get_record_or_404(db, user_induction_id)
    return induction_lifecycle.send_reminder(db, mailer, record)

