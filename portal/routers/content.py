import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from portal.database import get_db
from portal.models.site_content import DEFAULT_SECTIONS, SiteContent
from portal.models.user import User
from portal.routers.auth_deps import require_manager
from portal.schemas.settings import SiteContentUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/content", tags=["content"])


def _load_sections(db: Session) -> dict:
    sections = {name: {"text": text} for name, text in DEFAULT_SECTIONS.items()}
    for row in db.query(SiteContent).all():
        sections[row.section] = {"text": row.text}
    return sections


@router.get("/")
def get_website_content(db: Session = Depends(get_db)):
    """Public homepage copy; sections never edited fall back to the defaults."""
    return _load_sections(db)


@router.put("/")
def update_website_content(
    payload: SiteContentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager()),
):
    for section, text in payload.sections.items():
        row = db.query(SiteContent).filter(SiteContent.section == section).first()
        if row is None:
            db.add(SiteContent(section=section, text=text))
        else:
            row.text = text
    db.commit()
    logger.info(f"Website content updated by {current_user.id}", extra={"sections": sorted(payload.sections)})
    return {"success": True, "message": "Content updated successfully", "content": _load_sections(db)}
