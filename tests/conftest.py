"""
Shared pytest fixtures and configuration for all tests
"""
import base64
import io
import os
from typing import AsyncGenerator
from unittest.mock import AsyncMock, Mock

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from google.genai import types
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from exteriorai.database.models import Base
from exteriorai.services.google_ai_service import GoogleAIStudioService
from exteriorai.services.media import ImageBlob
from exteriorai.services.project_store import ProjectStore


@pytest.fixture
def test_db_url():
    """Database URL for testing"""
    return "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def test_engine(test_db_url):
    """One in-memory database per test, shared by every session of that test"""
    engine = create_async_engine(test_db_url, poolclass=StaticPool, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test"""
    async_session = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture
def store(db_session):
    return ProjectStore(db_session)


@pytest.fixture
def mock_google_ai_client():
    """Mock google-genai client for testing without API calls"""
    mock = Mock()
    mock.models = Mock()
    mock.models.generate_content = Mock()
    return mock


@pytest.fixture
async def google_ai(mock_google_ai_client):
    """A configured generation client whose SDK calls go to the mock"""
    service = GoogleAIStudioService(api_key="test-google-key-123456", model="test-image-model")
    service.genai_client = mock_google_ai_client
    yield service
    await service.close()


@pytest.fixture
def mock_hosting():
    """Image host double; set return values per test"""
    hosting = Mock()
    hosting.upload_generated_image = AsyncMock()
    hosting.upload_project_image = AsyncMock(return_value="https://i.ibb.co/photo/yard.jpg")
    return hosting


@pytest.fixture
def genai_response():
    """Builder for a GenerateContentResponse with a single candidate"""

    def _build(*parts: types.Part) -> types.GenerateContentResponse:
        return types.GenerateContentResponse(
            candidates=[types.Candidate(content=types.Content(role="model", parts=list(parts)))]
        )

    return _build


@pytest.fixture
def sample_image_bytes():
    """A small PNG of a green lawn"""
    img = Image.new("RGB", (64, 48), color=(60, 140, 60))
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def sample_jpeg_bytes():
    img = Image.new("RGB", (32, 32), color="brown")
    buffer = io.BytesIO()
    img.save(buffer, format="JPEG")
    return buffer.getvalue()


@pytest.fixture
def sample_data_uri(sample_image_bytes):
    return f"data:image/png;base64,{base64.b64encode(sample_image_bytes).decode()}"


@pytest.fixture
def sample_image_blob(sample_image_bytes):
    return ImageBlob(data=sample_image_bytes, filename="yard.png", content_type="image/png")
