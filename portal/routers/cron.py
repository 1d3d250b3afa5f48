"""
Scheduled jobs, triggered by an external scheduler with the ``apiKey`` query
parameter instead of a user token.
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from portal.core.timeutils import utcnow
from portal.database import get_db
from portal.routers.auth_deps import require_cron_key
from portal.services import induction_lifecycle, qualifications
from portal.services.mailer import get_mailer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", tags=["cron"], dependencies=[Depends(require_cron_key)])


@router.get("/daily-jobs")
def run_daily_jobs(db: Session = Depends(get_db), mailer=Depends(get_mailer)):
    now = utcnow()
    logger.info("Daily scheduled jobs started")
    overdue = induction_lifecycle.sweep_overdue(db, mailer, now=now)
    expiries = qualifications.sweep_qualification_expiries(db, mailer, now=now)
    logger.info(
        "Daily scheduled jobs completed",
        extra={"overdue_updated": overdue["updated"], "reminders_sent": expiries["remindersSent"]},
    )
    return {
        "success": True,
        "executedAt": now.isoformat(),
        "results": {
            "overdue_inductions": overdue,
            "qualification_expiries": expiries,
        },
    }


@router.get("/update-overdue")
def update_overdue_inductions(db: Session = Depends(get_db), mailer=Depends(get_mailer)):
    now = utcnow()
    result = induction_lifecycle.sweep_overdue(db, mailer, now=now)
    return {"success": True, "executedAt": now.isoformat(), **result}


@router.get("/check-qualifications")
def check_qualification_expiries(db: Session = Depends(get_db), mailer=Depends(get_mailer)):
    now = utcnow()
    result = qualifications.sweep_qualification_expiries(db, mailer, now=now)
    return {"success": True, "executedAt": now.isoformat(), **result}
