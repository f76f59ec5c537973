"""
Pydantic schemas for the activity feed
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class ActivityResponse(BaseModel):
    id: str
    user_id: str
    action: str
    project_id: Optional[str] = None
    project_name: Optional[str] = None
    timestamp: datetime

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class ActivityListResponse(BaseModel):
    activities: List[ActivityResponse]
    total: int
