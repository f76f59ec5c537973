"""
ImgBB image hosting for generated images and project photos
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Optional, Union

import aiohttp

from exteriorai.core.config import settings
from exteriorai.core.errors import ImageHostingError
from exteriorai.services.media import ImageBlob

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 100
DEGRADED_UPLOAD_WARNING = (
    "Image was generated but could not be uploaded to storage. The returned URL is truncated."
)


@dataclass
class HostedImage:
    """A generated image stored on the image host"""

    url: str
    display_url: Optional[str] = None
    delete_url: Optional[str] = None

    degraded = False


@dataclass
class DegradedUpload:
    """
    The image host rejected or never received the upload.

    preview_url is a data URI holding only the first 100 base64 characters
    followed by "..."; it does not render. Callers must check `degraded`
    before treating it as a usable URL.
    """

    preview_url: str
    warning: str
    reason: str
    full_image_too_large: bool = True

    degraded = True


UploadOutcome = Union[HostedImage, DegradedUpload]


def truncated_preview(image_base64: str, mime_type: str) -> str:
    return f"data:{mime_type};base64,{image_base64[:PREVIEW_LENGTH]}..."


class ImageHostingService:
    """Service for ImgBB uploads"""

    def __init__(self, api_key: Optional[str] = None, upload_url: Optional[str] = None):
        self.api_key = settings.imgbb_api_key if api_key is None else api_key
        self.upload_url = upload_url or settings.imgbb_upload_url
        self.session: Optional[aiohttp.ClientSession] = None

        if not self.api_key:
            logger.warning("ImgBB API key not configured - generated images will only be returned as previews")

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session"""
        if self.session is None or self.session.closed:
            timeout = aiohttp.ClientTimeout(total=settings.http_timeout)
            self.session = aiohttp.ClientSession(timeout=timeout)
        return self.session

    async def _upload(self, image_base64: str, name: str) -> dict:
        """POST one image to ImgBB and return the `data` object of a successful response"""
        if not self.api_key:
            raise ImageHostingError("IMGBB_API_KEY is not configured")

        form = aiohttp.FormData()
        form.add_field("key", self.api_key)
        form.add_field("image", image_base64)
        form.add_field("name", name)

        session = await self._get_session()
        try:
            async with session.post(self.upload_url, data=form) as response:
                if response.status < 200 or response.status >= 300:
                    raise ImageHostingError(
                        f"ImgBB upload failed: {response.status}",
                        status_code=response.status,
                    )
                payload = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise ImageHostingError(f"ImgBB upload failed: {str(e) or type(e).__name__}")

        if not isinstance(payload, dict) or not payload.get("success"):
            error = payload.get("error") if isinstance(payload, dict) else None
            message = error.get("message") if isinstance(error, dict) else None
            raise ImageHostingError(message or "ImgBB upload failed")

        data = payload.get("data")
        if not isinstance(data, dict) or not data.get("url"):
            raise ImageHostingError("ImgBB response did not include an image URL")
        return data

    async def upload_generated_image(self, image_base64: str, mime_type: str) -> UploadOutcome:
        """
        Host a freshly generated image.

        Never raises: any failure becomes a DegradedUpload so the generation
        flow still returns a qualified success.
        """
        name = f"gemini_generated_{int(time.time() * 1000)}"
        logger.info("Uploading generated image to ImgBB...")
        try:
            data = await self._upload(image_base64, name)
        except ImageHostingError as e:
            logger.error(f"Error uploading to ImgBB: {e.message}")
            return DegradedUpload(
                preview_url=truncated_preview(image_base64, mime_type),
                warning=DEGRADED_UPLOAD_WARNING,
                reason=e.message,
            )

        logger.info("Image uploaded to ImgBB successfully")
        return HostedImage(url=data["url"], display_url=data.get("display_url"), delete_url=data.get("delete_url"))

    async def upload_project_image(self, owner_id: str, project_id: str, image: ImageBlob) -> str:
        """Host a user's project photo and return its URL. Raises ImageHostingError."""
        folder = f"exteriorai_{owner_id}_{project_id}"
        logger.info(
            f"Uploading project image for user {owner_id}, project {project_id} "
            f"({image.content_type}, {image.size / 1024:.2f} KB)"
        )
        data = await self._upload(image.to_base64(), f"{folder}_{int(time.time() * 1000)}")
        return data["url"]

    async def close(self):
        """Close HTTP session"""
        if self.session:
            await self.session.close()
            self.session = None


# Global service instance
image_hosting_service = ImageHostingService()
