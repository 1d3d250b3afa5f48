import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from portal.core.exceptions import StorageError, ValidationError
from portal.core.timeutils import as_utc, utcnow
from portal.database import get_db
from portal.models.qualification import (
    QualificationRequest, QualificationRequestStatus, QualificationStatus, UserQualification
)
from portal.models.user import User
from portal.routers.auth_deps import ensure_self_or_manager, get_current_user, require_manager
from portal.routers.files import read_upload
from portal.schemas.qualification import (
    QualificationOut, QualificationRequestIn, QualificationRequestOut, QualificationWithUser
)
from portal.services import notifications
from portal.services.mailer import get_mailer
from portal.services.qualifications import TWO_MONTHS
from portal.services.storage import get_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/user-qualifications", tags=["user-qualifications"])

_datetime_adapter = TypeAdapter(datetime)


def _parse_form_date(value: Optional[str], field: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        return _datetime_adapter.validate_python(value)
    except PydanticValidationError:
        raise ValidationError(f"Invalid date for {field}")


def _get_qualification_or_404(db: Session, qualification_id: int) -> UserQualification:
    qualification = db.query(UserQualification).filter(UserQualification.id == qualification_id).first()
    if not qualification:
        raise HTTPException(status_code=404, detail="Qualification not found")
    return qualification


def _discard_file(storage, object_name: Optional[str]) -> None:
    if not object_name:
        return
    try:
        storage.delete(object_name)
    except StorageError as e:
        logger.error(f"Error deleting file {object_name}: {e.message}")


@router.post("/upload", status_code=status.HTTP_201_CREATED)
async def upload_qualification(
    qualification_type: str = Form(..., alias="qualificationType"),
    qualification_name: str = Form(..., alias="qualificationName"),
    user_id: Optional[int] = Form(None, alias="userId"),
    issuer: Optional[str] = Form(None),
    issue_date: Optional[str] = Form(None, alias="issueDate"),
    expiry_date: Optional[str] = Form(None, alias="expiryDate"),
    notes: Optional[str] = Form(None),
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    storage=Depends(get_storage),
    current_user: User = Depends(get_current_user),
):
    owner_id = user_id or current_user.id
    ensure_self_or_manager(current_user, owner_id)
    if owner_id != current_user.id and not db.query(User).filter(User.id == owner_id).first():
        raise HTTPException(status_code=404, detail="User not found")

    issued = _parse_form_date(issue_date, "issueDate")
    expires = _parse_form_date(expiry_date, "expiryDate")
    data = await read_upload(file)
    stored = storage.upload(data, file.filename, file.content_type, prefix=f"qualifications/{owner_id}")

    qualification = UserQualification(
        user_id=owner_id,
        qualification_type=qualification_type,
        qualification_name=qualification_name,
        issuer=issuer,
        issue_date=issued,
        expiry_date=expires,
        file_url=stored.url,
        file_name=stored.file_name,
        object_name=stored.object_name,
        status=QualificationStatus.active,
        notes=notes or "",
    )
    db.add(qualification)

    # An upload fulfils any outstanding request for the same type
    db.query(QualificationRequest).filter(
        QualificationRequest.user_id == owner_id,
        QualificationRequest.qualification_type == qualification_type,
        QualificationRequest.status == QualificationRequestStatus.pending,
    ).update({QualificationRequest.status: QualificationRequestStatus.fulfilled}, synchronize_session=False)
    db.commit()
    db.refresh(qualification)
    logger.info(f"Qualification {qualification.id} uploaded for user {owner_id}")
    return {"success": True, "id": qualification.id, "message": "Qualification uploaded successfully"}


@router.get("/")
def get_user_qualifications(
    user_id: Optional[int] = Query(None, alias="userId"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    owner_id = user_id or current_user.id
    ensure_self_or_manager(current_user, owner_id)
    qualifications = (
        db.query(UserQualification)
        .filter(UserQualification.user_id == owner_id)
        .order_by(UserQualification.uploaded_at.desc(), UserQualification.id.desc())
        .all()
    )
    return {"qualifications": [QualificationOut.model_validate(q) for q in qualifications]}


@router.put("/{qualification_id}")
async def update_user_qualification(
    qualification_id: int,
    qualification_type: Optional[str] = Form(None, alias="qualificationType"),
    qualification_name: Optional[str] = Form(None, alias="qualificationName"),
    issuer: Optional[str] = Form(None),
    issue_date: Optional[str] = Form(None, alias="issueDate"),
    expiry_date: Optional[str] = Form(None, alias="expiryDate"),
    notes: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    storage=Depends(get_storage),
    current_user: User = Depends(get_current_user),
):
    qualification = _get_qualification_or_404(db, qualification_id)
    ensure_self_or_manager(current_user, qualification.user_id)

    if qualification_type:
        qualification.qualification_type = qualification_type
    if qualification_name:
        qualification.qualification_name = qualification_name
    if issuer is not None:
        qualification.issuer = issuer
    if issue_date is not None:
        qualification.issue_date = _parse_form_date(issue_date, "issueDate")
    if expiry_date is not None:
        new_expiry = _parse_form_date(expiry_date, "expiryDate")
        if as_utc(new_expiry) != as_utc(qualification.expiry_date):
            # A renewed qualification starts a fresh reminder cycle
            qualification.reminders_sent = {"twoMonths": False, "oneMonth": False, "expired": False}
            qualification.status = QualificationStatus.active
        qualification.expiry_date = new_expiry
    if notes is not None:
        qualification.notes = notes

    old_object_name = None
    if file is not None and file.filename:
        data = await read_upload(file)
        stored = storage.upload(data, file.filename, file.content_type, prefix=f"qualifications/{qualification.user_id}")
        old_object_name = qualification.object_name
        qualification.file_url = stored.url
        qualification.file_name = stored.file_name
        qualification.object_name = stored.object_name

    db.commit()
    _discard_file(storage, old_object_name)
    return {"success": True, "message": "Qualification updated successfully"}


@router.delete("/{qualification_id}")
def delete_user_qualification(
    qualification_id: int,
    db: Session = Depends(get_db),
    storage=Depends(get_storage),
    current_user: User = Depends(get_current_user),
):
    qualification = _get_qualification_or_404(db, qualification_id)
    ensure_self_or_manager(current_user, qualification.user_id)
    object_name = qualification.object_name
    db.delete(qualification)
    db.commit()
    _discard_file(storage, object_name)
    logger.info(f"Qualification {qualification_id} deleted by {current_user.id}")
    return {"success": True, "message": "Qualification deleted successfully"}


@router.get("/all")
def get_all_user_qualifications(
    status_filter: Optional[QualificationStatus] = Query(None, alias="status"),
    expiry_filter: Optional[str] = Query(None, alias="expiryFilter"),
    user_id: Optional[int] = Query(None, alias="userId"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager()),
):
    query = db.query(UserQualification)
    if status_filter is not None:
        query = query.filter(UserQualification.status == status_filter)
    if user_id is not None:
        query = query.filter(UserQualification.user_id == user_id)
    qualifications = query.order_by(UserQualification.uploaded_at.desc(), UserQualification.id.desc()).all()

    now = utcnow()
    if expiry_filter == "expired":
        qualifications = [q for q in qualifications if q.expiry_date and as_utc(q.expiry_date) < now]
    elif expiry_filter == "expiring_soon":
        qualifications = [
            q for q in qualifications
            if q.expiry_date and now <= as_utc(q.expiry_date) < now + TWO_MONTHS
        ]
    return {"qualifications": [QualificationWithUser.model_validate(q) for q in qualifications]}


@router.post("/request", status_code=status.HTTP_201_CREATED)
def request_qualification(
    payload: QualificationRequestIn,
    db: Session = Depends(get_db),
    mailer=Depends(get_mailer),
    current_user: User = Depends(require_manager()),
):
    user = db.query(User).filter(User.id == payload.user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    message = payload.message or f"Please upload your {payload.qualification_type}"
    request = QualificationRequest(
        user_id=user.id,
        requested_by=current_user.id,
        qualification_type=payload.qualification_type,
        message=message,
        due_date=payload.due_date,
        status=QualificationRequestStatus.pending,
    )
    db.add(request)
    db.commit()
    db.refresh(request)

    email_result = notifications.deliver(
        mailer, user.email,
        notifications.qualification_request_email(
            user, current_user, payload.qualification_type, message, payload.due_date
        ),
        notifications.resolve_email_settings(db),
    )
    return {
        "success": True,
        "id": request.id,
        "message": "Qualification request sent successfully",
        "emailResult": email_result,
    }


@router.get("/requests")
def get_qualification_requests(
    status_filter: Optional[QualificationRequestStatus] = Query(None, alias="status"),
    user_id: Optional[int] = Query(None, alias="userId"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(QualificationRequest)
    if not current_user.is_manager:
        query = query.filter(QualificationRequest.user_id == current_user.id)
    elif user_id is not None:
        query = query.filter(QualificationRequest.user_id == user_id)
    if status_filter is not None:
        query = query.filter(QualificationRequest.status == status_filter)
    requests = query.order_by(QualificationRequest.requested_at.desc(), QualificationRequest.id.desc()).all()
    return {"requests": [QualificationRequestOut.model_validate(r) for r in requests]}
