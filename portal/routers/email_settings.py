import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from portal.core.config import settings
from portal.database import get_db
from portal.models.email_settings import EmailSettings
from portal.models.user import User
from portal.routers.auth_deps import require_admin
from portal.schemas.settings import EmailSettingsIn, EmailSettingsOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/email-settings", tags=["email-settings"])


def _defaults() -> EmailSettingsOut:
    return EmailSettingsOut(
        default_from=settings.mail.from_email,
        default_reply_to=settings.mail.default_reply_to,
        default_cc=list(settings.mail.default_cc),
    )


@router.get("/", response_model=EmailSettingsOut)
def get_email_settings(db: Session = Depends(get_db), current_user: User = Depends(require_admin())):
    row = db.query(EmailSettings).first()
    if row is None:
        return _defaults()
    return row


@router.put("/")
def update_email_settings(
    payload: EmailSettingsIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin()),
):
    """Blank fields keep their current value."""
    row = db.query(EmailSettings).first()
    if row is None:
        defaults = _defaults()
        row = EmailSettings(
            id=1,
            default_from=defaults.default_from,
            default_reply_to=defaults.default_reply_to,
            default_cc=defaults.default_cc,
        )
        db.add(row)

    if payload.default_from:
        row.default_from = payload.default_from
    if payload.default_reply_to:
        row.default_reply_to = payload.default_reply_to
    if payload.default_cc:
        row.default_cc = [str(address) for address in payload.default_cc]
    db.commit()
    db.refresh(row)
    logger.info(f"Email settings updated by {current_user.id}")
    return {"message": "Email settings updated successfully", "settings": EmailSettingsOut.model_validate(row)}
