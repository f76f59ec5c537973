"""
Projects API routes: project CRUD, voice/text commands and transformations
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from exteriorai.core.auth import CurrentUser, get_current_user
from exteriorai.core.config import settings
from exteriorai.core.dependencies import get_project_store, get_project_workflow
from exteriorai.database.models import Project, ProjectType, TransformationRecord
from exteriorai.schemas.projects import (
    CommandRequest,
    ProjectResponse,
    ProjectsListResponse,
    ShareLinkResponse,
    TransformationRequest,
    TransformationResponse,
    TransformationResultResponse,
    TransformationsListResponse,
)
from exteriorai.services.media import read_image_upload
from exteriorai.services.project_store import ProjectStore
from exteriorai.services.transformation_service import ProjectWorkflow

logger = logging.getLogger(__name__)
router = APIRouter()


def _project_to_response(project: Project) -> ProjectResponse:
    """Convert a Project ORM object to a ProjectResponse, handling enum conversion."""
    return ProjectResponse(
        id=project.id,
        user_id=project.user_id,
        name=project.name,
        type=project.type.value,
        status=project.status.value,
        style_preference=project.style_preference,
        transformations=project.transformations,
        thumbnail=project.thumbnail,
        created_at=project.created_at,
        updated_at=project.updated_at,
    )


def _transformation_to_response(record: TransformationRecord) -> TransformationResponse:
    return TransformationResponse.model_validate(record)


@router.get("", response_model=ProjectsListResponse)
async def list_projects(
    current_user: CurrentUser = Depends(get_current_user),
    store: ProjectStore = Depends(get_project_store),
):
    """List the current user's projects, most recently updated first."""
    projects = await store.get_user_projects(current_user.uid)
    return ProjectsListResponse(projects=[_project_to_response(p) for p in projects], total=len(projects))


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    name: str = Form(..., min_length=1, max_length=200),
    project_type: ProjectType = Form(..., alias="type"),
    style_preference: int = Form(50, alias="stylePreference", ge=0, le=100),
    image: Optional[UploadFile] = File(None),
    current_user: CurrentUser = Depends(get_current_user),
    workflow: ProjectWorkflow = Depends(get_project_workflow),
):
    """
    Create a new project from a photo of the outdoor space.
    The photo is required; the request is rejected before anything is saved.
    """
    photo = await read_image_upload(image)
    project = await workflow.create_project(
        current_user.uid,
        {"name": name, "type": project_type, "style_preference": style_preference},
        photo,
    )
    return _project_to_response(project)


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    workflow: ProjectWorkflow = Depends(get_project_workflow),
):
    project = await workflow.get_owned_project(current_user.uid, project_id)
    return _project_to_response(project)


@router.put("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: str,
    name: Optional[str] = Form(None, min_length=1, max_length=200),
    project_type: Optional[ProjectType] = Form(None, alias="type"),
    style_preference: Optional[int] = Form(None, alias="stylePreference", ge=0, le=100),
    image: Optional[UploadFile] = File(None),
    current_user: CurrentUser = Depends(get_current_user),
    workflow: ProjectWorkflow = Depends(get_project_workflow),
):
    """
    Update a project. Only provided fields change; a new photo replaces the thumbnail.
    """
    fields = {}
    if name is not None:
        fields["name"] = name
    if project_type is not None:
        fields["type"] = project_type
    if style_preference is not None:
        fields["style_preference"] = style_preference

    photo = await read_image_upload(image) if image is not None else None
    project = await workflow.update_project(current_user.uid, project_id, fields, photo)
    return _project_to_response(project)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    workflow: ProjectWorkflow = Depends(get_project_workflow),
):
    """
    Delete a project. Its transformation history is left in place.
    """
    await workflow.delete_project(current_user.uid, project_id)
    logger.info(f"Deleted project {project_id} for user {current_user.uid}")
    return None


@router.post("/{project_id}/commands", response_model=ProjectResponse)
async def process_command(
    project_id: str,
    command: CommandRequest,
    current_user: CurrentUser = Depends(get_current_user),
    workflow: ProjectWorkflow = Depends(get_project_workflow),
):
    """Record that a voice or text command was received: the project moves to in-progress."""
    project = await workflow.process_command(current_user.uid, project_id, command.text)
    return _project_to_response(project)


@router.get("/{project_id}/transformations", response_model=TransformationsListResponse)
async def list_transformations(
    project_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    workflow: ProjectWorkflow = Depends(get_project_workflow),
):
    """Transformation history of a project, newest first."""
    await workflow.get_owned_project(current_user.uid, project_id)
    records = await workflow.store.get_project_transformations(project_id)
    return TransformationsListResponse(
        transformations=[_transformation_to_response(r) for r in records],
        total=len(records),
    )


@router.post("/{project_id}/transformations", response_model=TransformationResultResponse)
async def create_transformation(
    project_id: str,
    request: TransformationRequest,
    current_user: CurrentUser = Depends(get_current_user),
    workflow: ProjectWorkflow = Depends(get_project_workflow),
):
    """
    Generate a new "after" image, host it and attach it to the project.

    If the image host fails the generated image is not attached: the response
    has saved=false and a warning.
    """
    outcome = await workflow.generate_transformation(
        current_user.uid,
        project_id,
        request.prompt,
        request.original_image_url,
    )

    if outcome.upload.degraded:
        return TransformationResultResponse(
            saved=False,
            image_url=outcome.upload.preview_url,
            response_text=outcome.generated.caption,
            full_image_too_large=outcome.upload.full_image_too_large,
            warning=outcome.upload.warning,
            project=_project_to_response(outcome.project),
        )

    return TransformationResultResponse(
        saved=True,
        image_url=outcome.upload.url,
        response_text=outcome.generated.caption,
        transformation=_transformation_to_response(outcome.transformation) if outcome.persisted else None,
        project=_project_to_response(outcome.project),
    )


@router.get("/{project_id}/share", response_model=ShareLinkResponse)
async def get_share_link(
    project_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    workflow: ProjectWorkflow = Depends(get_project_workflow),
):
    """Share link stub; there is no access control behind it."""
    await workflow.get_owned_project(current_user.uid, project_id)
    base_url = settings.public_base_url.rstrip("/")
    return ShareLinkResponse(share_url=f"{base_url}/shared-projects/{project_id}")
