"""
Notification bodies and dispatch.

Each ``*_email`` builder returns a ``(subject, html_body)`` pair; the body is
an HTML fragment that the mailer wraps in the shared layout. ``deliver`` sends
one message and turns the outcome into the ``emailResult`` structure returned
by the API, so a mail outage never fails the request that triggered it.
"""
import html
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from portal.core.config import settings
from portal.core.exceptions import EmailDeliveryError
from portal.core.timeutils import as_utc, format_long_date, utcnow
from portal.models.email_settings import EmailSettings
from portal.models.user import User
from portal.models.user_induction import InductionStatus, UserInduction

logger = logging.getLogger(__name__)

Email = Tuple[str, str]

NO_CHANGES_RESULT = {"success": False, "message": "No email sent - no significant changes"}
SENT_RESULT = {"success": True, "message": "Email sent successfully"}

OVERDUE_BADGE = '<span style="color: red; font-weight: bold;">OVERDUE</span>'


@dataclass
class EmailDefaults:
    reply_to: Optional[str]
    cc: List[str] = field(default_factory=list)
    from_email: Optional[str] = None


def resolve_email_settings(db: Session) -> EmailDefaults:
    """The stored EmailSettings row wins over environment defaults, field by field."""
    row = db.query(EmailSettings).first()
    reply_to = settings.mail.default_reply_to
    cc = list(settings.mail.default_cc)
    from_email = None
    if row is not None:
        reply_to = row.default_reply_to or reply_to
        cc = list(row.default_cc) if row.default_cc else cc
        from_email = row.default_from or None
    return EmailDefaults(reply_to=reply_to, cc=cc, from_email=from_email)


def deliver(
    mailer,
    to: str,
    email: Email,
    defaults: Optional[EmailDefaults] = None,
    extra_cc: Optional[List[str]] = None,
) -> Dict[str, Any]:
    subject, body = email
    cc = list(defaults.cc) if defaults else []
    for address in extra_cc or []:
        if address and address not in cc:
            cc.append(address)
    try:
        mailer.send_email(
            to,
            subject,
            body,
            reply_to=defaults.reply_to if defaults else None,
            cc=cc,
            from_email=defaults.from_email if defaults else None,
        )
    except EmailDeliveryError as e:
        logger.warning(f"Notification to {to} not delivered: {e.message}", extra={"subject": subject})
        return {"success": False, "message": "Failed to send email", "error": e.message}
    return dict(SENT_RESULT)


def _sign_off() -> str:
    return f"<p>Ngā mihi (kind regards),<br/>{settings.mail.organisation_name}</p>"


def _portal_button(path: str = "", label: str = "Go to Induction Portal") -> str:
    return f'<a href="{settings.portal_url}{path}" class="button">{label}</a>'


def _greeting(user: User, full: bool = True) -> str:
    name = user.display_name if full else (user.first_name or user.display_name)
    return f"<h1>Kia ora {html.escape(name)}!</h1>"


def _induction_name(record: UserInduction) -> str:
    if record.induction is not None and record.induction.name:
        return record.induction.name
    return record.induction_name or "Unnamed Induction"


def _how_to_complete(plural: bool = False) -> str:
    what = "these inductions" if plural else "the induction"
    which = "each induction" if plural else "this induction"
    return (
        f"<h3>How to complete {what}?</h3>"
        f"<p>Simply head to our induction portal website ({settings.portal_url}) and log in using this "
        f'email address. Navigate to the "My Inductions" tab, find {which}, and click "Start".</p>'
    )


def assignment_email(user: User, record: UserInduction) -> Email:
    name = _induction_name(record)
    body = f"""
    {_greeting(user)}
    <p>You have been assigned a new induction module to complete.</p>
    <h3>Here are the details:</h3>
    <p><strong>Induction Name:</strong> {name}</p>
    <p><strong>Available from:</strong> {format_long_date(record.available_from, "Immediately")}</p>
    <p><strong>Due Date:</strong> {format_long_date(record.due_date, "No deadline")}</p>
    {_how_to_complete()}
    <p>If you have any questions, please feel free to reach out to your manager or reply to this email.</p>
    {_sign_off()}
    """
    return f"You have been assigned a new induction: {name}", body


def batch_assignment_email(user: User, records: List[UserInduction]) -> Email:
    count = len(records)
    plural = count > 1
    details = "".join(
        f"""
        <div style="margin-bottom: 15px; padding-bottom: 15px; border-bottom: 1px solid #eee;">
          <p><strong>Induction Name:</strong> {_induction_name(record)}</p>
          <p><strong>Available from:</strong> {format_long_date(record.available_from, "Immediately")}</p>
          <p><strong>Due Date:</strong> {format_long_date(record.due_date, "No deadline")}</p>
        </div>"""
        for record in records
    )
    body = f"""
    {_greeting(user)}
    <p>You have been assigned {count} new induction{"s" if plural else ""} to complete.</p>
    <h3>Here are the details:</h3>
    {details}
    {_how_to_complete(plural=plural)}
    <p>If you have any questions, please feel free to reach out to your manager or reply to this email.</p>
    {_sign_off()}
    """
    return f"You have been assigned {count} new induction{'s' if plural else ''}", body


def overdue_email(user: User, record: UserInduction) -> Email:
    name = _induction_name(record)
    body = f"""
    {_greeting(user)}
    <p>This is a reminder that you have an <strong>overdue induction</strong> that requires your immediate attention.</p>
    <h3>Induction Details:</h3>
    <p><strong>Induction name:</strong> {name}</p>
    <p><strong>Due Date:</strong> {format_long_date(record.due_date)}</p>
    <p><strong>Status:</strong> {OVERDUE_BADGE}</p>
    <h3>Urgent Action Required:</h3>
    <p>Please complete this induction as soon as possible.</p>
    <p>You can access your induction through our portal:</p>
    {_portal_button("/inductions", "Complete Induction Now")}
    <p>If you have any issues accessing or completing this induction, please contact your manager immediately.</p>
    {_sign_off()}
    """
    return f"⚠️ OVERDUE: Action required for {name}", body


def completion_email(user: User, record: UserInduction) -> Email:
    name = _induction_name(record)
    body = f"""
    {_greeting(user, full=False)}
    <p>Congratulations on completing your induction module! 🎉</p>
    <h3>Induction Details:</h3>
    <p><strong>Induction name:</strong> {name}</p>
    <p><strong>Completed on:</strong> {format_long_date(record.completed_at)}</p>
    <p>This achievement has been recorded in our system.</p>
    <p>You can access your other inductions and see your completion certificate through our portal.</p>
    {_portal_button("/inductions", "View My Inductions")}
    <p>If you have any questions, please feel free to reach out to your manager or reply to this email.</p>
    {_sign_off()}
    """
    return f"Congratulations! You've completed {name}", body


STATUS_LABELS = {
    InductionStatus.assigned: "Assigned",
    InductionStatus.in_progress: "In Progress",
    InductionStatus.complete: "Completed",
    InductionStatus.overdue: "Overdue",
}


def date_change_email(user: User, record: UserInduction, changed_fields: Dict[str, Dict[str, Any]]) -> Email:
    name = _induction_name(record)
    changes = ""
    if "dueDate" in changed_fields:
        change = changed_fields["dueDate"]
        changes += (
            f'<p><strong>Due Date</strong> Changed from "{format_long_date(change["old"])}" '
            f'to "{format_long_date(change["new"])}"</p>'
        )
    if "availableFrom" in changed_fields:
        change = changed_fields["availableFrom"]
        changes += (
            f'<p><strong>Available From</strong> Changed from "{format_long_date(change["old"])}" '
            f'to "{format_long_date(change["new"])}"</p>'
        )
    body = f"""
    {_greeting(user)}
    <p>There have been updates made to one of your assigned induction modules.</p>
    <p><strong>Induction:</strong> {name}</p>
    <h3>Changes Made:</h3>
    {changes}
    <h3>Induction Details:</h3>
    <p><strong>Current Status is </strong> {STATUS_LABELS.get(record.status, record.status)}</p>
    <p><strong>Available from </strong> {format_long_date(record.available_from)}</p>
    <p><strong>Due on </strong> {format_long_date(record.due_date)}</p>
    <h3>What does this mean for you?</h3>
    <p>Please review these changes and take appropriate action if needed. You can access your induction through our portal.</p>
    {_portal_button("/inductions", "View Induction")}
    <p>If you have any questions, please feel free to reach out to your manager or reply to this email.</p>
    {_sign_off()}
    """
    return f"Updates to your induction: {name}", body


def reminder_email(user: User, record: UserInduction, now: Optional[datetime] = None) -> Email:
    now = now or utcnow()
    name = _induction_name(record)
    due = as_utc(record.due_date)
    is_overdue = due is not None and due < now
    if is_overdue:
        status_text = OVERDUE_BADGE
    elif record.status == InductionStatus.in_progress:
        status_text = "In Progress"
    else:
        status_text = "Assigned"
    due_line = f"<p><strong>Due Date:</strong> {format_long_date(record.due_date)}</p>" if due else ""
    body = f"""
    {_greeting(user)}
    <p>This is a friendly reminder about your assigned induction module that requires your attention.</p>
    <h3>Induction Details:</h3>
    <p><strong>Induction name:</strong> {name}</p>
    <p><strong>Status:</strong> {status_text}</p>
    {due_line}
    <h3>Action Required:</h3>
    <p>Please complete this induction{" as soon as possible" if is_overdue else " by the due date"}.</p>
    <p>You can access your induction through our portal:</p>
    {_portal_button("/inductions", "Complete Induction")}
    <p>If you have any issues accessing or completing this induction, please contact your manager.</p>
    {_sign_off()}
    """
    return f"Reminder: Complete your {name} induction", body


def welcome_email(user: User) -> Email:
    body = f"""
    {_greeting(user)}
    <p>Welcome to {settings.mail.organisation_name}! We're excited to have you on board and looking forward to working with you.</p>
    <p>An account has been created for you on the {settings.app_name}. This is where you'll complete important onboarding activities and access induction resources.</p>
    <p><strong>Getting Started:</strong></p>
    <ol>
      <li><strong>Visit the Homepage:</strong> {_portal_button("", "Visit Induction Portal")}</li>
      <li><strong>Log In:</strong> use this email address once an administrator has set your password.</li>
    </ol>
    <p>One of our managers will guide you through the necessary induction process when you start with us.</p>
    <p>If you have any questions or issues accessing your account, reply to this email.</p>
    <p>We look forward to working with you!</p>
    {_sign_off()}
    """
    return f"Welcome to {settings.app_name}!", body


def qualification_request_email(user: User, requester: Optional[User], qualification_type: str,
                                message: Optional[str], due_date: Optional[datetime]) -> Email:
    due_line = f"<p><strong>Please upload by </strong> {format_long_date(due_date)}</p>" if due_date else ""
    requester_name = requester.display_name if requester else settings.mail.organisation_name
    body = f"""
    {_greeting(user)}
    <p>You have received a request to upload a qualification.</p>
    <h3>Request Details:</h3>
    <p><strong>Qualification Type:</strong> {html.escape(qualification_type)}</p>
    <p><strong>Message:</strong> {html.escape(message or "")}</p>
    {due_line}
    <p>Please upload your qualification through our induction portal:</p>
    {_portal_button("/qualifications", "Upload Qualification")}
    <p>Ngā mihi (kind regards),<br/>{html.escape(requester_name)}<br/>{settings.mail.organisation_name}</p>
    """
    return f"Request to upload qualification: {qualification_type}", body


QUALIFICATION_REMINDERS = {
    "expired": (
        "ACTION REQUIRED: {name} has EXPIRED", "EXPIRED", "red",
        "Please upload a renewed qualification immediately.",
    ),
    "oneMonth": (
        "Action needed: {name} expires in 1 month", "EXPIRING SOON", "orange",
        "Please renew this qualification before it expires.",
    ),
    "twoMonths": (
        "Reminder: {name} expires in 2 months", "RENEWAL REQUIRED", "orange",
        "Please start the renewal process for this qualification.",
    ),
}


def qualification_expiry_email(user: User, qualification, reminder_type: str) -> Email:
    subject, urgency, colour, action = QUALIFICATION_REMINDERS[reminder_type]
    body = f"""
    {_greeting(user)}
    <p>This is a reminder about your qualification/certificate that requires attention.</p>
    <h3>Qualification Details:</h3>
    <p><strong>Qualification:</strong> {qualification.qualification_name or ""}</p>
    <p><strong>Type:</strong> {qualification.qualification_type or ""}</p>
    <p><strong>Issuer:</strong> {qualification.issuer or ""}</p>
    <p><strong>Expiry Date:</strong> {format_long_date(qualification.expiry_date)}</p>
    <p><strong>Status:</strong> <span style="color: {colour}; font-weight: bold;">{urgency}</span></p>
    <h3>Action Required:</h3>
    <p>{action}</p>
    <p>You can manage your qualifications through our induction portal:</p>
    {_portal_button("/qualifications", "Manage Qualifications")}
    <p>If you have any questions about qualification renewal, please contact your manager.</p>
    {_sign_off()}
    """
    return subject.format(name=qualification.qualification_name), body


def contact_confirmation_email(full_name: str, subject: str, message: str, reference: int) -> Email:
    body = f"""
    <h1>Kia ora {html.escape(full_name)}!</h1>
    <p>Thank you for contacting us. We have received your message and will be in touch soon.</p>
    <h3>Your message details:</h3>
    <p><strong>Subject:</strong> {html.escape(subject)}</p>
    <p><strong>Message:</strong><br>{html.escape(message).replace(chr(10), "<br>")}</p>
    <p>If you have any further questions, please feel free to reach out to us.</p>
    <hr>
    {_sign_off()}
    <p><small>This is an automated message. ({reference})</small></p>
    """
    return f"Thank you for contacting us: {subject}", body


def contact_notification_email(submission, department_name: Optional[str]) -> Email:
    department = html.escape(department_name) if department_name else "None"
    if submission.form_type == "feedback":
        rows = "".join(
            f"<p><strong>{html.escape(str(key))}:</strong> {html.escape(str(value))}</p>"
            for key, value in (submission.feedback_data or {}).items()
        )
        body = f"""
        <h2>Induction Feedback Submission</h2>
        <p><strong>From:</strong> {html.escape(submission.full_name)} ({html.escape(submission.email)})</p>
        <p><strong>Department:</strong> {department}</p>
        <hr>
        {rows or f"<p>{html.escape(submission.message)}</p>"}
        <p><small>Submission Reference ID: {submission.id}</small></p>
        """
        return submission.subject, body

    sender = "Staff (Logged In)" if submission.is_logged_in else "Public User (Not Logged In)"
    body = f"""
    <h3>New Contact Form Submission</h3>
    <p><strong>From:</strong> {html.escape(submission.full_name)} ({html.escape(submission.email)})</p>
    <p><strong>Status:</strong> {sender}</p>
    <p><strong>Department:</strong> {department}</p>
    <p><strong>Subject:</strong> {html.escape(submission.subject)}</p>
    <p><strong>Message:</strong><br>{html.escape(submission.message).replace(chr(10), "<br>")}</p>
    <p><small>Submission Reference ID: {submission.id}</small></p>
    """
    return f"New Contact Form Submission: {submission.subject}", body
