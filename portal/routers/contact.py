import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from portal.core.config import settings
from portal.core.limiter import limiter
from portal.database import get_db
from portal.models.contact_submission import ContactFormType, ContactStatus, ContactSubmission
from portal.models.department import Department
from portal.models.user import User
from portal.routers.auth_deps import get_optional_user, require_manager
from portal.schemas.contact import ContactOut, ContactStatusUpdate, ContactSubmit
from portal.services import notifications
from portal.services.mailer import get_mailer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contact", tags=["contact"])


def _get_submission_or_404(db: Session, submission_id: int) -> ContactSubmission:
    submission = db.query(ContactSubmission).filter(ContactSubmission.id == submission_id).first()
    if not submission:
        raise HTTPException(status_code=404, detail="Contact submission not found")
    return submission


@router.post("/submit", status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_public)
def submit_contact_form(
    request: Request,
    payload: ContactSubmit,
    db: Session = Depends(get_db),
    mailer=Depends(get_mailer),
    current_user: Optional[User] = Depends(get_optional_user),
):
    """
    Public contact and feedback form. Signed-in staff are routed to the chosen
    department (or their own); everyone else goes to the admin inbox.
    """
    is_logged_in = current_user is not None
    department = None
    if is_logged_in:
        department_id = payload.contact_type or current_user.department_id
        if department_id is not None:
            department = db.query(Department).filter(Department.id == department_id).first()

    is_feedback = payload.form_type == ContactFormType.feedback
    submission = ContactSubmission(
        full_name=payload.full_name.strip(),
        email=payload.email,
        contact_type=department.id if department else None,
        subject=payload.subject.strip(),
        message=payload.message,
        status=ContactStatus.new,
        user_id=current_user.id if is_logged_in else None,
        is_logged_in=is_logged_in,
        form_type=payload.form_type,
        feedback_data=payload.feedback_data if is_feedback else None,
    )
    db.add(submission)
    db.commit()
    db.refresh(submission)
    logger.info(
        f"Contact submission {submission.id} received",
        extra={"form_type": submission.form_type.value, "is_logged_in": is_logged_in},
    )

    # Feedback is collected silently; only contact messages get a confirmation
    if not is_feedback:
        notifications.deliver(
            mailer, submission.email,
            notifications.contact_confirmation_email(
                submission.full_name, submission.subject, submission.message, submission.id
            ),
            notifications.EmailDefaults(reply_to=None),
        )

    admin_email = settings.mail.admin_email
    reply_to_sender = notifications.EmailDefaults(reply_to=submission.email)
    department_email = department.email if department is not None else None
    notification = notifications.contact_notification_email(
        submission, department.name if department is not None else None
    )
    if department_email:
        notifications.deliver(mailer, department_email, notification, reply_to_sender, extra_cc=[admin_email])
    else:
        notifications.deliver(mailer, admin_email, notification, reply_to_sender)

    return {
        "message": "Form submitted successfully",
        "id": submission.id,
        "isLoggedIn": is_logged_in,
        "departmentRouted": bool(department_email),
        "formType": submission.form_type.value,
    }


@router.get("/", response_model=List[ContactOut])
def list_contact_submissions(db: Session = Depends(get_db), current_user: User = Depends(require_manager())):
    return db.query(ContactSubmission).order_by(ContactSubmission.created_at.desc(), ContactSubmission.id.desc()).all()


@router.get("/{submission_id}", response_model=ContactOut)
def get_contact_submission(
    submission_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager()),
):
    return _get_submission_or_404(db, submission_id)


@router.patch("/{submission_id}/status")
def update_contact_status(
    submission_id: int,
    payload: ContactStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager()),
):
    submission = _get_submission_or_404(db, submission_id)
    submission.status = payload.status
    db.commit()
    return {"message": "Contact status updated successfully"}


@router.delete("/{submission_id}")
def delete_contact_submission(
    submission_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager()),
):
    submission = _get_submission_or_404(db, submission_id)
    db.delete(submission)
    db.commit()
    logger.info(f"Contact submission {submission_id} deleted by {current_user.id}")
    return {"message": "Contact deleted successfully"}
