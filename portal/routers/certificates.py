import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session

from portal.core.config import settings
from portal.core.exceptions import NotFoundError
from portal.core.limiter import limiter
from portal.database import get_db
from portal.models.user import User
from portal.models.user_induction import UserInduction
from portal.routers.auth_deps import ensure_self_or_manager, get_current_user
from portal.services import certificates

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/certificates", tags=["certificates"])


@router.get("/generate/{user_induction_id}")
def generate_certificate(
    user_induction_id: str,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    record = db.query(UserInduction).filter(UserInduction.id == user_induction_id).first()
    if not record:
        raise NotFoundError("User Induction not found")
    ensure_self_or_manager(current_user, record.user_id)

    ip_address = request.client.host if request.client else None
    pdf_bytes, filename = certificates.generate_certificate(db, user_induction_id, ip_address=ip_address)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Content-Length": str(len(pdf_bytes)),
        },
    )


@router.get("/verify/{certificate_id}")
@limiter.limit(settings.rate_limit_public)
def verify_certificate(certificate_id: str, request: Request, db: Session = Depends(get_db)):
    return certificates.verify_certificate(db, certificate_id)
