"""
Upload API Endpoint
Admin image upload for product galleries
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from app.core.auth import TokenUser, require_admin
from app.services.upload_service import UploadError, UploadService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("")
async def upload_images(
    images: List[UploadFile] = File(...),
    user: TokenUser = Depends(require_admin)
):
    """
    Upload product images (multipart field `images`, up to 10 files, 5MB each)

    Returns:
        {"files": [absolute image URLs]}
    """
    try:
        files = []
        for upload in images:
            content = await upload.read()
            files.append((upload.filename, upload.content_type, content))

        urls = UploadService().save_images(files)
        return {"files": urls}

    except UploadError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception(f"Error uploading images: {e}")
        raise HTTPException(status_code=500, detail="Failed to upload images")
