"""
FastAPI main application for ExteriorAI
"""
import logging
import re
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from exteriorai.core.config import settings
from exteriorai.core.database import create_tables
from exteriorai.core.errors import register_exception_handlers
from exteriorai.core.logging import setup_logging
from exteriorai.middleware import RequestLoggingMiddleware
from exteriorai.routers import activity, generation, projects, transcription, upload
from exteriorai.services.google_ai_service import google_ai_service
from exteriorai.services.image_hosting_service import image_hosting_service
from exteriorai.services.transcription_service import transcription_service

setup_logging()
logger = logging.getLogger(__name__)


def _mask(secret: str) -> str:
    return f"{secret[:7]}...{secret[-4:]}" if len(secret) > 11 else "***"


def _log_configuration():
    """Log which integrations are configured. Missing keys only fail the calls that need them."""
    logger.info("=" * 60)
    logger.info("ENVIRONMENT VARIABLES CHECK")
    logger.info("=" * 60)

    secrets = {
        "GOOGLE_AI_API_KEY": (settings.google_ai_api_key, "Image generation will not work!"),
        "ELEVENLABS_API_KEY": (settings.elevenlabs_api_key, "Transcription will not work!"),
        "IMGBB_API_KEY": (settings.imgbb_api_key, "Generated images will only be returned as previews!"),
        "CLOUDINARY_API_KEY": (settings.cloudinary_api_key, "Direct uploads will not work!"),
        "FIREBASE_PROJECT_ID": (settings.firebase_project_id, "Project endpoints will reject every token!"),
    }
    for name, (value, consequence) in secrets.items():
        if value:
            logger.info(f"✅ {name} is set: {_mask(value)}")
        else:
            logger.error(f"❌ {name} is NOT set - {consequence}")

    sanitized = re.sub(r":\/\/[^:]*:[^@]*@", "://***:***@", settings.database_url)
    logger.info(f"✅ DATABASE_URL is set: {sanitized}")
    logger.info("=" * 60)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    logger.info("Starting ExteriorAI API...")
    _log_configuration()

    await create_tables()
    logger.info("Application started")

    yield

    # Shutdown
    logger.info("Shutting down ExteriorAI API...")
    await google_ai_service.close()
    await image_hosting_service.close()
    await transcription_service.close()
    logger.info("Application stopped")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="Voice driven outdoor space redesign API",
    version=settings.version,
    lifespan=lifespan,
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url="/redoc" if settings.environment == "development" else None,
)

# Add middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

register_exception_handlers(app)


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint for load balancers"""
    return {
        "status": "healthy",
        "timestamp": time.time(),
        "version": settings.version,
        "database": "ready",  # Database sessions managed per-request
    }


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "name": settings.app_name,
        "version": settings.version,
        "docs": "/docs" if settings.environment == "development" else None,
        "endpoints": {
            "generate_image": "/api/generate-image",
            "transcribe": "/api/transcribe",
            "upload": "/api/upload",
            "projects": "/api/projects",
            "activity": "/api/activity",
        },
    }


# Include routers
app.include_router(generation.router, prefix="/api", tags=["generation"])
app.include_router(transcription.router, prefix="/api", tags=["transcription"])
app.include_router(upload.router, prefix="/api", tags=["upload"])
app.include_router(projects.router, prefix="/api/projects", tags=["projects"])
app.include_router(activity.router, prefix="/api", tags=["activity"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "exteriorai.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_config=None,  # Use our custom logging
        access_log=False,  # We handle this in middleware
    )
