"""
Induction assignment and status lifecycle.

Records move assigned -> in_progress -> complete, and divert to overdue when
their due date passes before completion. Every mutation is diffed against the
previous state; the diff decides which notification (if any) goes out.
Email failures are reported back in ``emailResult`` and never undo a change.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from portal.core.exceptions import (
    AppException, EmailDeliveryError, InvalidTransitionError, NotFoundError, ValidationError
)
from portal.core.timeutils import as_utc, utcnow
from portal.models.induction import Induction
from portal.models.user import User
from portal.models.user_induction import InductionStatus, UserInduction
from portal.services import notifications

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    InductionStatus.assigned: {InductionStatus.in_progress, InductionStatus.complete, InductionStatus.overdue},
    InductionStatus.in_progress: {InductionStatus.complete, InductionStatus.overdue},
    InductionStatus.overdue: {InductionStatus.in_progress, InductionStatus.complete},
    InductionStatus.complete: set(),
}

# API field name -> model attribute
MUTABLE_FIELDS = {
    "status": "status",
    "dueDate": "due_date",
    "availableFrom": "available_from",
    "progress": "progress",
    "answers": "answers",
    "feedback": "feedback",
}
DATE_FIELDS = {"dueDate", "availableFrom"}


def check_transition(current: InductionStatus, requested: InductionStatus) -> None:
    if requested == current:
        return
    if requested not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionError(current.value, requested.value)


def _same_value(field: str, old: Any, new: Any) -> bool:
    if field in DATE_FIELDS:
        return as_utc(old) == as_utc(new)
    return old == new


def apply_update(record: UserInduction, updates: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Dict[str, Any]]:
    """
    Applies a partial update in place and returns the changed fields as
    ``{field: {"old": ..., "new": ...}}`` keyed by API field name.

    Only MUTABLE_FIELDS are honoured; empty date values are ignored. The
    transition is validated before anything is touched, and a record can only
    be marked overdue once its (possibly updated) due date has passed.
    """
    now = now or utcnow()
    updates = {
        key: value for key, value in updates.items()
        if key in MUTABLE_FIELDS
        and not (key in DATE_FIELDS and not value)
        and not (key == "status" and value is None)
    }

    requested = updates.get("status")
    if requested is not None:
        requested = InductionStatus(requested)
        check_transition(record.status, requested)
        if requested == InductionStatus.overdue and record.status != InductionStatus.overdue:
            due_date = as_utc(updates.get("dueDate") or record.due_date)
            if due_date is None or due_date >= now:
                raise InvalidTransitionError(record.status.value, requested.value, reason="due date has not passed")
        updates["status"] = requested

    changed: Dict[str, Dict[str, Any]] = {}
    for key, value in updates.items():
        attribute = MUTABLE_FIELDS[key]
        old = getattr(record, attribute)
        if _same_value(key, old, value):
            continue
        setattr(record, attribute, value)
        changed[key] = {"old": old, "new": value}

    if "status" in changed:
        new_status = changed["status"]["new"]
        if new_status == InductionStatus.complete and record.completed_at is None:
            record.completed_at = now
            changed["completedAt"] = {"old": None, "new": now}
        elif new_status == InductionStatus.in_progress and record.started_at is None:
            record.started_at = now
            changed["startedAt"] = {"old": None, "new": now}
        elif new_status == InductionStatus.overdue and record.overdue_at is None:
            record.overdue_at = now

    return changed


def classify_notification(changed: Dict[str, Dict[str, Any]]) -> Optional[str]:
    """
    Picks the single notification a change warrants: overdue beats completion,
    completion beats a date change. A move to in_progress alone sends nothing.
    """
    new_status = changed["status"]["new"] if "status" in changed else None
    if new_status == InductionStatus.overdue:
        return "overdue"
    if new_status == InductionStatus.complete:
        return "complete"
    if "dueDate" in changed or "availableFrom" in changed:
        return "date_change"
    return None


def _build_notification(kind: str, user: User, record: UserInduction, changed: Dict[str, Dict[str, Any]]):
    if kind == "overdue":
        return notifications.overdue_email(user, record)
    if kind == "complete":
        return notifications.completion_email(user, record)
    return notifications.date_change_email(user, record, changed)


def _department_cc(user: User) -> List[str]:
    if user.department is not None and user.department.email:
        return [user.department.email]
    return []


def assign_induction(
    db: Session,
    mailer,
    user_id: int,
    induction_id: int,
    due_date: Optional[datetime] = None,
    available_from: Optional[datetime] = None,
) -> Dict[str, Any]:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")
    induction = db.query(Induction).filter(Induction.id == induction_id).first()
    if not induction:
        raise NotFoundError("Induction not found")

    record = UserInduction(
        user_id=user.id,
        induction_id=induction.id,
        induction_name=induction.name,
        status=InductionStatus.assigned,
        due_date=due_date,
        available_from=available_from,
        completed_at=None,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.info(f"Induction {induction.id} assigned to user {user.id}", extra={"user_induction_id": record.id})

    defaults = notifications.resolve_email_settings(db)
    email_result = notifications.deliver(
        mailer, user.email, notifications.assignment_email(user, record), defaults
    )
    return {"success": True, "userInductionId": record.id, "emailResult": email_result}


def assign_batch(db: Session, mailer, user_id: int, assignments: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Assigns several inductions to one user. Items are committed one by one;
    a failing item is reported in ``results`` and does not affect the others.
    """
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")

    results = []
    created: List[UserInduction] = []
    for item in assignments:
        induction_id = item.get("inductionId")
        try:
            if not induction_id:
                raise ValidationError("Induction ID is required")
            induction = db.query(Induction).filter(Induction.id == induction_id).first()
            if not induction:
                raise NotFoundError("Induction not found")
            record = UserInduction(
                user_id=user.id,
                induction_id=induction.id,
                induction_name=induction.name,
                status=InductionStatus.assigned,
                due_date=item.get("dueDate"),
                available_from=item.get("availableFrom"),
                completed_at=None,
            )
            db.add(record)
            db.commit()
            db.refresh(record)
        except (NotFoundError, ValidationError) as e:
            results.append({"inductionId": induction_id or "unknown", "success": False, "error": e.message})
            continue
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to assign induction {induction_id} to user {user.id}: {e}", exc_info=True)
            results.append({"inductionId": induction_id or "unknown", "success": False, "error": str(e)})
            continue
        created.append(record)
        results.append({"inductionId": induction.id, "success": True, "userInductionId": record.id})

    if created:
        defaults = notifications.resolve_email_settings(db)
        email_result = notifications.deliver(
            mailer, user.email, notifications.batch_assignment_email(user, created), defaults
        )
    else:
        email_result = {"success": False, "message": "No email sent"}

    logger.info(f"Batch assignment for user {user.id}: {len(created)}/{len(assignments)} assigned")
    return {"success": True, "results": results, "totalAssigned": len(created), "emailResult": email_result}


def update_user_induction(db: Session, mailer, record: UserInduction, updates: Dict[str, Any]) -> Dict[str, Any]:
    changed = apply_update(record, updates)
    db.commit()
    db.refresh(record)

    email_result = dict(notifications.NO_CHANGES_RESULT)
    kind = classify_notification(changed)
    if kind is not None:
        user = record.user
        defaults = notifications.resolve_email_settings(db)
        email_result = notifications.deliver(
            mailer, user.email, _build_notification(kind, user, record, changed), defaults
        )

    status_change = changed.get("status")
    return {
        "message": "User Induction updated successfully",
        "id": record.id,
        "changes": list(changed.keys()),
        "emailResult": email_result,
        "statusUpdate": status_change["new"].value if status_change else None,
    }


def sweep_overdue(db: Session, mailer, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Marks every past-due, incomplete record as overdue and emails its owner
    (department inbox copied). Records already overdue are left alone, so a
    second run changes nothing.
    """
    now = now or utcnow()
    candidates = (
        db.query(UserInduction)
        .filter(UserInduction.status != InductionStatus.complete)
        .filter(UserInduction.due_date.isnot(None))
        .all()
    )

    defaults = None
    updated = []
    for record in candidates:
        if record.status == InductionStatus.overdue or as_utc(record.due_date) >= now:
            continue
        record.status = InductionStatus.overdue
        record.overdue_at = now
        db.commit()
        updated.append({
            "id": record.id,
            "userId": record.user_id,
            "inductionName": record.induction_name,
            "dueDate": record.due_date,
        })

        user = record.user
        if user is None:
            logger.warning(f"Overdue induction {record.id} has no user to notify")
            continue
        if defaults is None:
            defaults = notifications.resolve_email_settings(db)
        notifications.deliver(
            mailer, user.email, notifications.overdue_email(user, record), defaults,
            extra_cc=_department_cc(user),
        )

    logger.info(f"Overdue sweep marked {len(updated)} induction(s)", extra={"scanned": len(candidates)})
    return {
        "updated": len(updated),
        "message": f"{len(updated)} induction{'' if len(updated) == 1 else 's'} marked as overdue",
        "updatedInductions": updated,
    }


def send_reminder(db: Session, mailer, record: UserInduction) -> Dict[str, Any]:
    """Unlike other notifications, a failed send fails the reminder."""
    user = record.user
    defaults = notifications.resolve_email_settings(db)
    subject, body = notifications.reminder_email(user, record)
    try:
        mailer.send_email(
            user.email, subject, body,
            reply_to=defaults.reply_to, cc=defaults.cc, from_email=defaults.from_email,
        )
    except EmailDeliveryError as e:
        raise AppException(
            message=f"Failed to send reminder: {e.message}",
            status_code=500,
            error_code="REMINDER_FAILED",
        ) from e

    record.reminder_count = (record.reminder_count or 0) + 1
    record.reminder_sent_at = utcnow()
    db.commit()
    logger.info(f"Reminder sent for induction {record.id}", extra={"reminder_count": record.reminder_count})
    return {"success": True, "message": "Reminder email sent successfully"}
