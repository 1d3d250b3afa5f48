import logging
from typing import List, Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from portal.database import get_db
from portal.models.induction import Induction
from portal.models.user import User
from portal.models.user_induction import UserInduction
from portal.routers.auth_deps import get_current_user, require_manager
from portal.schemas.induction import InductionCreate, InductionOut, InductionUpdate
from portal.services import reports

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/inductions", tags=["inductions"])


def get_induction_or_404(db: Session, induction_id: int) -> Induction:
    induction = db.query(Induction).filter(Induction.id == induction_id).first()
    if not induction:
        raise HTTPException(status_code=404, detail="Induction not found")
    return induction


@router.get("/", response_model=List[InductionOut])
def list_inductions(
    include_drafts: bool = Query(True, alias="includeDrafts"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(Induction)
    # Staff never see drafts
    if not include_drafts or not current_user.is_manager:
        query = query.filter(Induction.is_draft.is_(False))
    return query.order_by(Induction.name).all()


@router.post("/", response_model=InductionOut, status_code=status.HTTP_201_CREATED)
def create_induction(
    payload: InductionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager()),
):
    data = payload.model_dump(exclude={"questions"})
    induction = Induction(**data, questions=[q.model_dump(mode="json", by_alias=True) for q in payload.questions])
    db.add(induction)
    db.commit()
    db.refresh(induction)
    logger.info(f"Induction {induction.id} created by {current_user.id}", extra={"questions": len(payload.questions)})
    return induction


@router.get("/{induction_id}", response_model=InductionOut)
def get_induction(induction_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return get_induction_or_404(db, induction_id)


@router.put("/{induction_id}", response_model=InductionOut)
def update_induction(
    induction_id: int,
    payload: InductionUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager()),
):
    induction = get_induction_or_404(db, induction_id)
    updates = payload.model_dump(exclude_unset=True, exclude={"questions"})
    for key, value in updates.items():
        setattr(induction, key, value)
    if payload.questions is not None:
        induction.questions = [q.model_dump(mode="json", by_alias=True) for q in payload.questions]
    if "name" in updates:
        # Keep the denormalised name on assignments in step
        db.query(UserInduction).filter(UserInduction.induction_id == induction.id).update(
            {UserInduction.induction_name: induction.name}, synchronize_session=False
        )
    db.commit()
    db.refresh(induction)
    return induction


@router.delete("/{induction_id}")
def delete_induction(induction_id: int, db: Session = Depends(get_db), current_user: User = Depends(require_manager())):
    induction = get_induction_or_404(db, induction_id)
    db.delete(induction)
    db.commit()
    logger.info(f"Induction {induction_id} deleted by {current_user.id}")
    return {"message": "Induction deleted successfully"}


@router.get("/{induction_id}/export")
def export_results(
    induction_id: int,
    format: Literal["pdf", "xlsx"] = Query("pdf"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager()),
):
    induction = get_induction_or_404(db, induction_id)
    records = db.query(UserInduction).filter(UserInduction.induction_id == induction.id).all()

    if format == "xlsx":
        content = reports.render_results_xlsx(induction, records)
        media_type = reports.XLSX_MEDIA_TYPE
    else:
        content = reports.render_results_pdf(induction, records)
        media_type = reports.PDF_MEDIA_TYPE
    filename = reports.export_filename(induction.name, format)

    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
