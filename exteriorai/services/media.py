"""
Media capture adapter: turns multipart uploads into typed audio clips and image blobs
"""
import base64
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import UploadFile

from exteriorai.core.config import settings
from exteriorai.core.errors import ImageRequiredError, InvalidImageError, NoAudioProvidedError

logger = logging.getLogger(__name__)

DEFAULT_AUDIO_FILENAME = "recording.webm"
DEFAULT_AUDIO_CONTENT_TYPE = "audio/webm"


@dataclass
class AudioClip:
    """A recorded voice command"""

    data: bytes
    filename: str = DEFAULT_AUDIO_FILENAME
    content_type: str = DEFAULT_AUDIO_CONTENT_TYPE

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class ImageBlob:
    """A user supplied photo of an outdoor space"""

    data: bytes
    filename: str
    content_type: str

    @property
    def size(self) -> int:
        return len(self.data)

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("utf-8")

    def to_data_uri(self) -> str:
        return f"data:{self.content_type};base64,{self.to_base64()}"


async def read_audio_clip(upload: Optional[UploadFile]) -> AudioClip:
    """Read the `audio` form field. Missing or empty audio never reaches the network."""
    if upload is None:
        raise NoAudioProvidedError()

    data = await upload.read()
    if not data:
        raise NoAudioProvidedError()

    clip = AudioClip(
        data=data,
        filename=upload.filename or DEFAULT_AUDIO_FILENAME,
        content_type=upload.content_type or DEFAULT_AUDIO_CONTENT_TYPE,
    )
    logger.info(f"Received audio file, size: {clip.size}, type: {clip.content_type}")
    return clip


async def read_image_upload(upload: Optional[UploadFile]) -> ImageBlob:
    """Read and validate an uploaded project photo"""
    if upload is None:
        raise ImageRequiredError()

    content_type = upload.content_type or ""
    if not content_type.startswith("image/"):
        logger.warning(f"Rejected upload with content type {content_type!r}")
        raise InvalidImageError()

    data = await upload.read()
    if not data:
        raise ImageRequiredError()

    if len(data) > settings.max_file_size:
        max_mb = settings.max_file_size // (1024 * 1024)
        raise InvalidImageError(f"File size must be less than {max_mb}MB")

    return ImageBlob(data=data, filename=upload.filename or "upload", content_type=content_type)
