"""
Completion certificates.

Certificates are rendered on demand with ReportLab and never stored; the
CertificateLog table records each issue so IDs can be verified later.
"""
import io
import logging
import re
from typing import Any, Dict, Optional, Tuple

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.pdfgen import canvas
from sqlalchemy.orm import Session

from portal.core.config import settings
from portal.core.exceptions import AccessDeniedError, NotFoundError, ValidationError
from portal.core.timeutils import format_certificate_date, utcnow
from portal.models.certificate_log import CertificateLog
from portal.models.user_induction import InductionStatus, UserInduction

logger = logging.getLogger(__name__)

CERTIFICATE_PREFIX = "CERT-"
MIN_CERTIFICATE_ID_LENGTH = 11


def certificate_id_for(user_induction_id: str) -> str:
    return f"{CERTIFICATE_PREFIX}{user_induction_id[:6].upper()}"


def certificate_filename(induction_name: str) -> str:
    return f"{re.sub(r'[^a-z0-9]', '_', induction_name, flags=re.IGNORECASE).lower()}_certificate.pdf"


def render_certificate_pdf(recipient_name: str, induction_name: str, completion_date: str, certificate_id: str) -> bytes:
    buffer = io.BytesIO()
    page_width, page_height = landscape(A4)
    pdf = canvas.Canvas(buffer, pagesize=landscape(A4))
    pdf.setTitle(f"Certificate {certificate_id}")

    # Header and footer bands
    pdf.setFillColor(colors.black)
    pdf.rect(0, page_height - 70, page_width, 70, stroke=0, fill=1)
    pdf.rect(0, 0, page_width, 20, stroke=0, fill=1)

    centre = page_width / 2
    lines = [
        ("Helvetica-Bold", 32, colors.black, "Certificate of Completion", 130),
        ("Helvetica", 18, colors.black, "This is to certify that", 175),
        ("Helvetica-Bold", 24, colors.black, recipient_name, 215),
        ("Helvetica", 18, colors.black, "has successfully completed the", 255),
        ("Helvetica-Bold", 24, colors.black, induction_name, 295),
        ("Helvetica", 16, colors.black, f"Completion Date: {completion_date}", 350),
        ("Helvetica", 12, colors.HexColor("#666666"), f"Certificate ID: {certificate_id}", 400),
        ("Helvetica", 12, colors.HexColor("#666666"), f"Verified by {settings.app_name}", 420),
    ]
    for font, size, colour, text, offset_from_top in lines:
        pdf.setFont(font, size)
        pdf.setFillColor(colour)
        pdf.drawCentredString(centre, page_height - offset_from_top, text)

    pdf.showPage()
    pdf.save()
    pdf_bytes = buffer.getvalue()
    buffer.close()
    return pdf_bytes


def generate_certificate(db: Session, user_induction_id: str, ip_address: Optional[str] = None) -> Tuple[bytes, str]:
    """Returns ``(pdf_bytes, filename)`` for a completed assignment."""
    record = db.query(UserInduction).filter(UserInduction.id == user_induction_id).first()
    if not record:
        raise NotFoundError("User Induction not found")
    if record.status != InductionStatus.complete:
        raise AccessDeniedError(
            "Cannot generate certificate for incomplete induction",
            details={"status": record.status.value},
        )

    induction_name = record.induction_name or "Induction Program"
    if record.induction is not None and record.induction.name:
        induction_name = record.induction.name
    recipient = record.user.display_name if record.user is not None else "Team Member"
    certificate_id = certificate_id_for(record.id)

    pdf_bytes = render_certificate_pdf(
        recipient, induction_name, format_certificate_date(record.completed_at), certificate_id
    )

    try:
        db.add(CertificateLog(
            certificate_id=certificate_id,
            user_induction_id=record.id,
            user_id=record.user_id,
            induction_id=record.induction_id,
            ip_address=ip_address,
        ))
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Error logging certificate generation for {certificate_id}: {e}")

    logger.info(f"Generated certificate {certificate_id} ({len(pdf_bytes)} bytes)")
    return pdf_bytes, certificate_filename(induction_name)


def _describe(record: UserInduction, certificate_id: str) -> Dict[str, Any]:
    recipient = ""
    if record.user is not None:
        recipient = record.user.display_name
    return {
        "id": certificate_id,
        "recipientName": recipient,
        "inductionName": record.induction_name or "Induction Program",
        "completionDate": record.completed_at,
    }


def verify_certificate(db: Session, certificate_id: str) -> Dict[str, Any]:
    # IDs are issued upper-case; accept any casing
    certificate_id = certificate_id.strip().upper()
    if not certificate_id.startswith(CERTIFICATE_PREFIX) or len(certificate_id) < MIN_CERTIFICATE_ID_LENGTH:
        raise ValidationError("Invalid certificate ID format")

    log = db.query(CertificateLog).filter(CertificateLog.certificate_id == certificate_id).first()
    if log is not None:
        record = db.query(UserInduction).filter(UserInduction.id == log.user_induction_id).first()
        certificate = {"id": certificate_id, "recipientName": "", "inductionName": "Induction Program", "completionDate": None}
        if record is not None:
            certificate = _describe(record, certificate_id)
        certificate["verifiedAt"] = utcnow()
        return {"success": True, "isValid": True, "certificate": certificate}

    prefix = certificate_id[len(CERTIFICATE_PREFIX):].lower()
    completed = db.query(UserInduction).filter(UserInduction.status == InductionStatus.complete).all()
    for record in completed:
        if record.id.lower().startswith(prefix):
            certificate = _describe(record, certificate_id)
            certificate["note"] = "Certificate verified but not found in logs"
            return {"success": True, "isValid": True, "certificate": certificate}

    return {"success": True, "isValid": False, "message": "Certificate could not be verified"}
