"""
Image generation API route
"""
import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from exteriorai.core.dependencies import get_google_ai_service, get_image_hosting_service
from exteriorai.core.errors import ExteriorAIError, MissingPromptError
from exteriorai.schemas.generation import GenerateImageRequest, GenerateImageResponse
from exteriorai.services.google_ai_service import GoogleAIStudioService
from exteriorai.services.image_hosting_service import ImageHostingService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/generate-image", response_model=GenerateImageResponse, response_model_exclude_none=True)
async def generate_image(
    request: GenerateImageRequest,
    generator: GoogleAIStudioService = Depends(get_google_ai_service),
    hosting: ImageHostingService = Depends(get_image_hosting_service),
):
    """
    Generate an "after" image from a prompt and an optional reference image,
    then host it.

    If hosting fails the response is still a 200, with fullImageTooLarge set
    and a truncated, non-renderable preview in imageUrl.
    """
    try:
        if not request.prompt or not request.prompt.strip():
            raise MissingPromptError()

        logger.info(f"Generate image request: has_reference={bool(request.original_image_url)}")
        generated = await generator.generate_image(request.prompt, request.original_image_url)
        upload = await hosting.upload_generated_image(generated.image_base64, generated.mime_type)
    except ExteriorAIError:
        raise
    except Exception as e:
        logger.error(f"Error in generate-image API: {e}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to process image generation request"},
        )

    if upload.degraded:
        return GenerateImageResponse(
            image_url=upload.preview_url,
            full_image_too_large=upload.full_image_too_large,
            response_text=generated.caption,
            error=upload.warning,
        )

    return GenerateImageResponse(
        image_url=upload.url,
        display_url=upload.display_url,
        delete_url=upload.delete_url,
        response_text=generated.caption,
    )
