"""
Exception hierarchy and the FastAPI handler that renders it as JSON
"""
import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ExteriorAIError(Exception):
    """Base error carrying the HTTP status it maps to at the API boundary"""

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Any = None, status_code: Optional[int] = None):
        self.message = message or self.message
        self.details = details
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


# Validation errors: rejected before any network call


class ValidationError(ExteriorAIError):
    status_code = 400
    message = "Invalid request"


class MissingPromptError(ValidationError):
    message = "No prompt provided"


class NoAudioProvidedError(ValidationError):
    message = "No audio file provided"


class MissingImageDataError(ValidationError):
    message = "No image data provided"


class ImageRequiredError(ValidationError):
    message = "Please upload an image for your project"


class InvalidImageError(ValidationError):
    message = "Please upload an image file"


# Upstream service errors: status passed through from the provider


class UpstreamServiceError(ExteriorAIError):
    status_code = 502
    message = "Upstream service error"


class GenerationServiceError(UpstreamServiceError):
    message = "Failed to generate image"


class TranscriptionServiceError(UpstreamServiceError):
    message = "Failed to transcribe audio"


class ImageHostingError(UpstreamServiceError):
    message = "Failed to upload image to hosting service"


class ObjectUploadError(UpstreamServiceError):
    status_code = 500
    message = "Failed to upload image"


class NoImageGeneratedError(ExteriorAIError):
    status_code = 400
    message = "No image was generated"


class MalformedUpstreamResponse(ExteriorAIError):
    status_code = 502
    message = "Unexpected response from upstream service"


class ServiceNotConfiguredError(ExteriorAIError):
    status_code = 503
    message = "Service is not configured"


class IdentityProviderUnavailableError(ExteriorAIError):
    status_code = 503
    message = "Authentication service unavailable"


class ProjectNotFoundError(ExteriorAIError):
    status_code = 404
    message = "Project not found"


class TransformationInProgressError(ExteriorAIError):
    status_code = 409
    message = "A transformation is already being generated for this project"


async def exteriorai_error_handler(request: Request, exc: ExteriorAIError) -> JSONResponse:
    log_level = logging.WARNING if exc.status_code < 500 else logging.ERROR
    logger.log(log_level, f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ExteriorAIError, exteriorai_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
