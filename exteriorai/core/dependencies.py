"""
FastAPI dependencies that hand the process-wide clients to the routes.

Each client is constructed once at import time and reused; tests replace
them through app.dependency_overrides.
"""
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from exteriorai.core.database import get_db
from exteriorai.services.cloudinary_service import CloudinaryService, cloudinary_service
from exteriorai.services.google_ai_service import GoogleAIStudioService, google_ai_service
from exteriorai.services.image_hosting_service import ImageHostingService, image_hosting_service
from exteriorai.services.project_store import ProjectStore
from exteriorai.services.transcription_service import TranscriptionService, transcription_service
from exteriorai.services.transformation_service import ProjectWorkflow


def get_google_ai_service() -> GoogleAIStudioService:
    return google_ai_service


def get_image_hosting_service() -> ImageHostingService:
    return image_hosting_service


def get_transcription_service() -> TranscriptionService:
    return transcription_service


def get_cloudinary_service() -> CloudinaryService:
    return cloudinary_service


def get_project_store(db: AsyncSession = Depends(get_db)) -> ProjectStore:
    return ProjectStore(db)


def get_project_workflow(
    store: ProjectStore = Depends(get_project_store),
    generator: GoogleAIStudioService = Depends(get_google_ai_service),
    hosting: ImageHostingService = Depends(get_image_hosting_service),
) -> ProjectWorkflow:
    return ProjectWorkflow(store, generator, hosting)
