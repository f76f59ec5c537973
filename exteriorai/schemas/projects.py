"""
Pydantic schemas for projects and their transformation history.

JSON keys are camelCase (stylePreference, createdAt, previousImageUrl).
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


# Request schemas
class CommandRequest(BaseModel):
    """A voice (already transcribed) or typed command for a project"""

    text: Optional[str] = None


class TransformationRequest(BaseModel):
    """Generate a new "after" image; the reference defaults to the project thumbnail"""

    prompt: Optional[str] = None
    original_image_url: Optional[str] = Field(None, alias="originalImageUrl")

    class Config:
        populate_by_name = True


# Response schemas
class ProjectResponse(BaseModel):
    id: str
    user_id: str
    name: str
    type: str
    status: str  # "draft", "in-progress" or "completed"
    style_preference: int
    transformations: int
    thumbnail: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class ProjectsListResponse(BaseModel):
    projects: List[ProjectResponse]
    total: int


class TransformationResponse(BaseModel):
    id: str
    project_id: str
    image_url: str
    previous_image_url: Optional[str] = None
    prompt: Optional[str] = None
    timestamp: datetime

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class TransformationsListResponse(BaseModel):
    transformations: List[TransformationResponse]
    total: int


class TransformationResultResponse(BaseModel):
    """
    Outcome of the generate -> host -> persist flow for a project.

    When the image host failed, saved is False, image_url is the truncated
    preview and warning explains why nothing was attached.
    """

    success: bool = True
    saved: bool
    image_url: str
    response_text: str = ""
    full_image_too_large: Optional[bool] = None
    warning: Optional[str] = None
    transformation: Optional[TransformationResponse] = None
    project: ProjectResponse

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class ShareLinkResponse(BaseModel):
    share_url: str

    class Config:
        alias_generator = to_camel
        populate_by_name = True
