"""
Orchestration of the project flows: create with photo, process a command,
generate -> host -> persist a transformation.

Every step awaits the previous network call; nothing here runs in parallel.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional, Set

from exteriorai.core.errors import (
    ImageHostingError,
    ImageRequiredError,
    MissingPromptError,
    ProjectNotFoundError,
    TransformationInProgressError,
)
from exteriorai.core.logging import get_logger
from exteriorai.database.models import Project, ProjectStatus, TransformationRecord
from exteriorai.services.google_ai_service import GeneratedImage, GoogleAIStudioService
from exteriorai.services.image_hosting_service import ImageHostingService, UploadOutcome
from exteriorai.services.media import ImageBlob
from exteriorai.services.project_store import ProjectStore

logger = get_logger(__name__)

# Project ids with a generation currently running in this process
_in_flight_generations: Set[str] = set()


@dataclass
class TransformationOutcome:
    """What one generate -> host -> persist run produced"""

    generated: GeneratedImage
    upload: UploadOutcome
    project: Project
    transformation: Optional[TransformationRecord] = None

    @property
    def persisted(self) -> bool:
        return self.transformation is not None


class ProjectWorkflow:
    """Sequences the store, generation and hosting clients for one request"""

    def __init__(
        self,
        store: ProjectStore,
        generator: GoogleAIStudioService,
        hosting: ImageHostingService,
        in_flight: Optional[Set[str]] = None,
    ):
        self.store = store
        self.generator = generator
        self.hosting = hosting
        self.in_flight = _in_flight_generations if in_flight is None else in_flight

    async def get_owned_project(self, owner_id: str, project_id: str) -> Project:
        """Projects of other users are reported as missing"""
        project = await self.store.get_project(project_id)
        if project is None or project.user_id != owner_id:
            raise ProjectNotFoundError()
        return project

    async def create_project(self, owner_id: str, data: Dict[str, Any], image: Optional[ImageBlob]) -> Project:
        """
        Create a project from its mandatory photo.

        The photo is required before anything is written. If hosting the photo
        fails the project is still kept, without a thumbnail.
        """
        if image is None:
            raise ImageRequiredError()

        logger.info("creating_project", name=data.get("name"), owner_id=owner_id)
        project_id = await self.store.create_project(owner_id, data)

        try:
            thumbnail_url = await self.hosting.upload_project_image(owner_id, project_id, image)
            await self.store.update_project(project_id, {"thumbnail": thumbnail_url})
        except ImageHostingError as e:
            logger.error("project_photo_upload_failed", project_id=project_id, reason=e.message)

        await self.store.create_activity_log(owner_id, f"Created project: {data['name']}", project_id, data["name"])
        return await self.get_owned_project(owner_id, project_id)

    async def update_project(
        self,
        owner_id: str,
        project_id: str,
        fields: Dict[str, Any],
        image: Optional[ImageBlob] = None,
    ) -> Project:
        await self.get_owned_project(owner_id, project_id)

        fields = dict(fields)
        if image is not None:
            fields["thumbnail"] = await self.hosting.upload_project_image(owner_id, project_id, image)

        project = await self.store.update_project(project_id, fields)
        await self.store.create_activity_log(owner_id, f"Updated project: {project.name}", project_id, project.name)
        return project

    async def delete_project(self, owner_id: str, project_id: str) -> None:
        project = await self.get_owned_project(owner_id, project_id)
        project_name = project.name

        await self.store.delete_project(project_id)
        await self.store.create_activity_log(owner_id, f"Deleted project: {project_name}", project_id, project_name)

    async def process_command(self, owner_id: str, project_id: str, text: str) -> Project:
        """A voice or text command was accepted for the project: it is now in progress"""
        if not text or not text.strip():
            raise MissingPromptError("Please say something first")

        await self.get_owned_project(owner_id, project_id)
        logger.info("processing_command", project_id=project_id, command=text[:100])
        return await self.store.update_project(project_id, {"status": ProjectStatus.IN_PROGRESS})

    async def generate_transformation(
        self,
        owner_id: str,
        project_id: str,
        prompt: str,
        original_image_url: Optional[str] = None,
    ) -> TransformationOutcome:
        """
        Generate a new "after" image for the project and attach it.

        The reference image defaults to the current thumbnail. A degraded
        upload is returned to the caller but not attached to the project.
        """
        if not prompt or not prompt.strip():
            raise MissingPromptError()

        project = await self.get_owned_project(owner_id, project_id)

        if project_id in self.in_flight:
            raise TransformationInProgressError()
        self.in_flight.add(project_id)
        try:
            previous_image_url = project.thumbnail
            reference_url = original_image_url or previous_image_url

            generated = await self.generator.generate_image(prompt, reference_url)
            upload = await self.hosting.upload_generated_image(generated.image_base64, generated.mime_type)

            if upload.degraded:
                logger.warning("transformation_not_saved", project_id=project_id, reason=upload.reason)
                return TransformationOutcome(generated=generated, upload=upload, project=project)

            # Two independent writes; a failure between them is not rolled back
            transformation_id = await self.store.add_transformation_record(
                project_id,
                {"image_url": upload.url, "prompt": prompt, "previous_image_url": previous_image_url},
            )
            project = await self.store.update_project(
                project_id,
                {
                    "thumbnail": upload.url,
                    "transformations": (project.transformations or 0) + 1,
                    "status": ProjectStatus.COMPLETED,
                },
            )
            logger.info("transformation_attached", project_id=project_id, transformation_id=transformation_id)

            return TransformationOutcome(
                generated=generated,
                upload=upload,
                project=project,
                transformation=await self.store.get_transformation(transformation_id),
            )
        finally:
            self.in_flight.discard(project_id)
