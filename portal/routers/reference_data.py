"""
Simple named lookup lists: locations, positions and certificate types.

All three share the same CRUD surface, so their routers are built from one
factory. Names are trimmed and length-checked by the input schemas.
"""
import logging
from typing import List, Type

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from portal.database import get_db
from portal.models.certificate_type import CertificateType
from portal.models.location import Location
from portal.models.position import Position
from portal.models.user import User
from portal.routers.auth_deps import get_current_user, require_manager
from portal.schemas.reference import CertificateTypeIn, LocationIn, NamedOut, PositionIn

logger = logging.getLogger(__name__)


def build_named_router(prefix: str, model, schema: Type[BaseModel], label: str) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=[prefix.strip("/")])

    def get_or_404(db: Session, item_id: int):
        item = db.query(model).filter(model.id == item_id).first()
        if not item:
            raise HTTPException(status_code=404, detail=f"{label} not found")
        return item

    @router.get("/", response_model=List[NamedOut])
    def list_items(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
        return db.query(model).order_by(model.name).all()

    @router.post("/", response_model=NamedOut, status_code=status.HTTP_201_CREATED)
    def create_item(payload: schema, db: Session = Depends(get_db), current_user: User = Depends(require_manager())):
        item = model(name=payload.name)
        db.add(item)
        db.commit()
        db.refresh(item)
        logger.info(f"{label} {item.id} created", extra={"item_name": item.name})
        return item

    @router.put("/{item_id}", response_model=NamedOut)
    def update_item(
        item_id: int,
        payload: schema,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_manager()),
    ):
        item = get_or_404(db, item_id)
        item.name = payload.name
        db.commit()
        db.refresh(item)
        return item

    @router.delete("/{item_id}")
    def delete_item(item_id: int, db: Session = Depends(get_db), current_user: User = Depends(require_manager())):
        item = get_or_404(db, item_id)
        db.delete(item)
        db.commit()
        return {"message": f"{label} deleted successfully"}

    return router


locations_router = build_named_router("/locations", Location, LocationIn, "Location")
positions_router = build_named_router("/positions", Position, PositionIn, "Position")
certificate_types_router = build_named_router("/certificate-types", CertificateType, CertificateTypeIn, "Certificate type")
