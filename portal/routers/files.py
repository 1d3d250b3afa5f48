import logging

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status

from portal.core.config import settings
from portal.models.user import User
from portal.routers.auth_deps import get_current_user, require_manager
from portal.services.storage import get_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/files", tags=["files"])


async def read_upload(file: UploadFile) -> bytes:
    """Reads an uploaded file, enforcing the configured size limit."""
    if file is None or not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded")
    data = await file.read(settings.max_upload_bytes + 1)
    if len(data) > settings.max_upload_bytes:
        limit_mb = settings.max_upload_bytes // (1024 * 1024)
        raise HTTPException(
            status_code=413,
            detail=f"File exceeds the {limit_mb} MB limit",
        )
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file is empty")
    return data


@router.post("/upload")
async def upload_file(
    file: UploadFile = File(...),
    storage=Depends(get_storage),
    current_user: User = Depends(get_current_user),
):
    data = await read_upload(file)
    stored = storage.upload(data, file.filename, file.content_type, prefix="uploads")
    logger.info(f"File {stored.object_name} uploaded by {current_user.id}", extra={"size_bytes": stored.size_bytes})
    return {
        "message": "File uploaded successfully!",
        "fileUrl": stored.url,
        "objectName": stored.object_name,
        "fileName": stored.file_name,
    }


@router.get("/signed-url")
def get_signed_url(
    object_name: str = Query(..., alias="objectName"),
    storage=Depends(get_storage),
    current_user: User = Depends(get_current_user),
):
    return {"url": storage.signed_url(object_name), "expiresInMinutes": settings.storage.signed_url_expiry_minutes}


@router.delete("/{object_name:path}")
def delete_file(
    object_name: str,
    storage=Depends(get_storage),
    current_user: User = Depends(require_manager()),
):
    storage.delete(object_name)
    logger.info(f"File {object_name} deleted by {current_user.id}")
    return {"message": "File deleted successfully"}
