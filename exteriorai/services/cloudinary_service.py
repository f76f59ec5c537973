"""
Cloudinary object storage for direct image uploads
"""
import asyncio
import logging
import secrets
import string
import time
from dataclasses import dataclass
from typing import Optional

import cloudinary
import cloudinary.uploader

from exteriorai.core.config import settings
from exteriorai.core.errors import MissingImageDataError, ObjectUploadError, ServiceNotConfiguredError

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


@dataclass
class UploadedObject:
    url: str
    public_id: str


def random_suffix(length: int = 6) -> str:
    return "".join(secrets.choice(_BASE36) for _ in range(length))


class CloudinaryService:
    """Uploads data URIs to Cloudinary under a caller chosen folder"""

    def __init__(self, cloud_name: Optional[str] = None, api_key: Optional[str] = None, api_secret: Optional[str] = None):
        self.cloud_name = cloud_name or settings.cloudinary_cloud_name
        self.api_key = api_key or settings.cloudinary_api_key
        self.api_secret = api_secret or settings.cloudinary_api_secret
        self.configured = bool(self.cloud_name and self.api_key and self.api_secret)

        if self.configured:
            cloudinary.config(
                cloud_name=self.cloud_name,
                api_key=self.api_key,
                api_secret=self.api_secret,
                secure=True,
            )
        else:
            logger.warning("Cloudinary credentials not configured - /api/upload will fail")

    async def upload_data_uri(self, image_data: Optional[str], folder: str) -> UploadedObject:
        if not image_data:
            raise MissingImageDataError()

        if not self.configured:
            raise ServiceNotConfiguredError("Cloudinary credentials are not configured")

        timestamp = int(time.time())
        public_id = f"{folder}/{timestamp}_{random_suffix()}"

        def _run_upload():
            return cloudinary.uploader.upload(image_data, folder=folder, public_id=public_id, timestamp=timestamp)

        loop = asyncio.get_running_loop()
        try:
            result = await loop.run_in_executor(None, _run_upload)
        except Exception as e:
            logger.error(f"Error uploading to Cloudinary: {e}", exc_info=True)
            raise ObjectUploadError()

        logger.info(f"Cloudinary upload successful: {result.get('public_id')}")
        return UploadedObject(url=result.get("secure_url"), public_id=result.get("public_id"))


# Global service instance
cloudinary_service = CloudinaryService()
