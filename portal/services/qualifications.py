import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from portal.core.timeutils import as_utc, utcnow
from portal.models.qualification import QualificationStatus, UserQualification
from portal.services import notifications

logger = logging.getLogger(__name__)

ONE_MONTH = timedelta(days=30)
TWO_MONTHS = timedelta(days=60)


def classify_expiry(expiry_date: datetime, reminders_sent: Dict[str, bool], now: datetime) -> Optional[str]:
    """Returns the reminder due for a qualification, most urgent first, skipping ones already sent."""
    expiry_date = as_utc(expiry_date)
    if expiry_date < now:
        return None if reminders_sent.get("expired") else "expired"
    if expiry_date < now + ONE_MONTH:
        return None if reminders_sent.get("oneMonth") else "oneMonth"
    if expiry_date < now + TWO_MONTHS:
        return None if reminders_sent.get("twoMonths") else "twoMonths"
    return None


def sweep_qualification_expiries(db: Session, mailer, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or utcnow()
    qualifications = db.query(UserQualification).filter(UserQualification.expiry_date.isnot(None)).all()

    defaults = None
    processed = []
    for qualification in qualifications:
        reminders_sent = dict(qualification.reminders_sent or {})
        reminder_type = classify_expiry(qualification.expiry_date, reminders_sent, now)
        if reminder_type is None:
            continue

        user = qualification.user
        email_result = {"success": False, "message": "No user to notify"}
        if user is not None:
            if defaults is None:
                defaults = notifications.resolve_email_settings(db)
            cc = [user.department.email] if user.department is not None and user.department.email else []
            email_result = notifications.deliver(
                mailer, user.email,
                notifications.qualification_expiry_email(user, qualification, reminder_type),
                defaults, extra_cc=cc,
            )

        # Each reminder is attempted at most once, delivered or not
        reminders_sent[reminder_type] = True
        qualification.reminders_sent = reminders_sent
        qualification.status = (
            QualificationStatus.expired if reminder_type == "expired" else QualificationStatus.expiring_soon
        )
        db.commit()
        processed.append({
            "id": qualification.id,
            "userId": qualification.user_id,
            "qualificationName": qualification.qualification_name,
            "expiryDate": qualification.expiry_date,
            "reminderType": reminder_type,
            "emailResult": email_result,
        })

    count = len(processed)
    message = f"{count} qualification expiry reminder{'' if count == 1 else 's'} sent"
    logger.info(message, extra={"scanned": len(qualifications)})
    return {"remindersSent": count, "message": message, "processedQualifications": processed}
