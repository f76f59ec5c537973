"""
Pydantic schemas for the image generation endpoint
"""
from typing import Optional

from pydantic import BaseModel, Field


class GenerateImageRequest(BaseModel):
    """Prompt plus an optional "before" image (HTTP(S) URL or data URI)"""

    prompt: Optional[str] = None
    original_image_url: Optional[str] = Field(None, alias="originalImageUrl")

    class Config:
        populate_by_name = True


class GenerateImageResponse(BaseModel):
    """
    Hosted result, or a degraded one when the image host failed.

    A degraded response carries full_image_too_large and error; its image_url
    is a truncated data URI that does not render.
    """

    success: bool = True
    image_url: str = Field(..., alias="imageUrl")
    display_url: Optional[str] = Field(None, alias="displayUrl")
    delete_url: Optional[str] = Field(None, alias="deleteUrl")
    response_text: str = Field("", alias="responseText")
    full_image_too_large: Optional[bool] = Field(None, alias="fullImageTooLarge")
    error: Optional[str] = None

    class Config:
        populate_by_name = True
