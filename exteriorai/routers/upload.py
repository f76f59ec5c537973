"""
Direct image upload API route (Cloudinary)
"""
import logging

from fastapi import APIRouter, Depends

from exteriorai.core.dependencies import get_cloudinary_service
from exteriorai.schemas.uploads import UploadRequest, UploadResponse
from exteriorai.services.cloudinary_service import CloudinaryService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/upload", response_model=UploadResponse)
async def upload_image(
    request: UploadRequest,
    uploader: CloudinaryService = Depends(get_cloudinary_service),
):
    """Upload a data URI into the given folder"""
    uploaded = await uploader.upload_data_uri(request.image_data, request.folder)
    return UploadResponse(url=uploaded.url, public_id=uploaded.public_id)
