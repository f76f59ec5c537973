"""
Pydantic schemas for direct object uploads
"""
from typing import Optional

from pydantic import BaseModel, Field


class UploadRequest(BaseModel):
    """A data URI and the storage folder to place it in"""

    image_data: Optional[str] = Field(None, alias="imageData")
    folder: str = "exteriorai"

    class Config:
        populate_by_name = True


class UploadResponse(BaseModel):
    success: bool = True
    url: str
    public_id: str
