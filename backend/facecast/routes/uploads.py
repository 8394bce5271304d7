"""
Upload route - scoped client-upload tokens for blob storage
"""
from fastapi import APIRouter, Depends, HTTPException

from ..config import settings
from ..deps import get_blob_store
from ..logger import logger
from ..schemas import UploadTokenRequest, UploadTokenResponse
from ..storage import ALLOWED_UPLOAD_CONTENT_TYPES, BlobStore

router = APIRouter(tags=["Uploads"])

def _upload_prefix(content_type: str) -> str:
    return "characters" if content_type.startswith("image/") else "videos"

@router.post("/upload", response_model=UploadTokenResponse)
async def issue_upload_token(
    request: UploadTokenRequest,
    blob_store: BlobStore = Depends(get_blob_store),
):
    """
    Presign one upload: fixed key with a random suffix, one content type,
    bounded size.
    """
    content_type = request.contentType.split(";", 1)[0].strip().lower()
    if content_type not in ALLOWED_UPLOAD_CONTENT_TYPES:
        logger.warning(f"Upload rejected, content type: {request.contentType}")
        raise HTTPException(status_code=400, detail=f"Content type not allowed: {request.contentType}")

    token = blob_store.presigned_upload(
        request.filename,
        content_type,
        prefix=_upload_prefix(content_type),
        max_bytes=settings.UPLOAD_MAX_BYTES,
        expires=settings.UPLOAD_URL_EXPIRE_SECONDS,
    )
    logger.info(f"Upload token issued: {token['key']}", extra={"content_type": content_type})
    return UploadTokenResponse(**token)
