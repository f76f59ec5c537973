"""
Activity feed API route
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from exteriorai.core.auth import CurrentUser, get_current_user
from exteriorai.core.config import settings
from exteriorai.core.dependencies import get_project_store
from exteriorai.schemas.activity import ActivityListResponse, ActivityResponse
from exteriorai.services.project_store import ProjectStore

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/activity", response_model=ActivityListResponse)
async def list_activity(
    limit: Optional[int] = Query(None, ge=1, le=100),
    current_user: CurrentUser = Depends(get_current_user),
    store: ProjectStore = Depends(get_project_store),
):
    """Most recent activity of the current user, newest first"""
    entries = await store.get_user_activity(current_user.uid, limit or settings.default_activity_limit)
    return ActivityListResponse(
        activities=[ActivityResponse.model_validate(entry) for entry in entries],
        total=len(entries),
    )
