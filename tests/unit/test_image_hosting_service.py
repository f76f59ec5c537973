"""
Unit tests for ImgBB hosting of generated images and project photos
"""
import base64

import aiohttp
import pytest
from aioresponses import aioresponses

from exteriorai.core.errors import ImageHostingError
from exteriorai.services.image_hosting_service import (
    DEGRADED_UPLOAD_WARNING,
    PREVIEW_LENGTH,
    DegradedUpload,
    HostedImage,
    ImageHostingService,
    truncated_preview,
)

IMGBB_URL = "https://api.imgbb.com/1/upload"

IMGBB_SUCCESS = {
    "success": True,
    "status": 200,
    "data": {
        "url": "https://i.ibb.co/abc123/gemini.png",
        "display_url": "https://i.ibb.co/abc123/gemini-display.png",
        "delete_url": "https://ibb.co/abc123/delete-token",
    },
}


@pytest.fixture
async def hosting():
    service = ImageHostingService(api_key="test-imgbb-key", upload_url=IMGBB_URL)
    yield service
    await service.close()


@pytest.fixture
def generated_base64():
    return base64.b64encode(b"\x89PNG" + b"x" * 600).decode()


class TestTruncatedPreview:
    @pytest.mark.unit
    def test_preview_keeps_first_100_characters(self, generated_base64):
        preview = truncated_preview(generated_base64, "image/png")
        payload = preview.split(",", 1)[1]

        assert preview.startswith("data:image/png;base64,")
        assert payload == generated_base64[:PREVIEW_LENGTH] + "..."

    @pytest.mark.unit
    def test_short_payload_is_not_padded(self):
        assert truncated_preview("abc", "image/jpeg") == "data:image/jpeg;base64,abc..."


class TestUploadGeneratedImage:
    """Hosting a generated image never raises"""

    @pytest.mark.unit
    async def test_success(self, hosting, generated_base64):
        with aioresponses() as mocked:
            mocked.post(IMGBB_URL, status=200, payload=IMGBB_SUCCESS)
            outcome = await hosting.upload_generated_image(generated_base64, "image/png")

        assert isinstance(outcome, HostedImage)
        assert outcome.degraded is False
        assert outcome.url == "https://i.ibb.co/abc123/gemini.png"
        assert outcome.display_url == "https://i.ibb.co/abc123/gemini-display.png"
        assert outcome.delete_url == "https://ibb.co/abc123/delete-token"

    @pytest.mark.unit
    async def test_http_error_degrades(self, hosting, generated_base64):
        with aioresponses() as mocked:
            mocked.post(IMGBB_URL, status=500, body="Internal Server Error")
            outcome = await hosting.upload_generated_image(generated_base64, "image/png")

        assert isinstance(outcome, DegradedUpload)
        assert outcome.degraded is True
        assert outcome.full_image_too_large is True
        assert outcome.warning == DEGRADED_UPLOAD_WARNING
        assert outcome.preview_url == truncated_preview(generated_base64, "image/png")

    @pytest.mark.unit
    async def test_unsuccessful_flag_degrades(self, hosting, generated_base64):
        with aioresponses() as mocked:
            mocked.post(
                IMGBB_URL,
                status=200,
                payload={"success": False, "status": 400, "error": {"message": "Invalid API v1 key."}},
            )
            outcome = await hosting.upload_generated_image(generated_base64, "image/png")

        assert outcome.degraded is True
        assert outcome.reason == "Invalid API v1 key."

    @pytest.mark.unit
    async def test_non_object_data_degrades(self, hosting, generated_base64):
        with aioresponses() as mocked:
            mocked.post(IMGBB_URL, status=200, payload={"success": True, "data": "unexpected"})
            outcome = await hosting.upload_generated_image(generated_base64, "image/png")

        assert isinstance(outcome, DegradedUpload)
        assert outcome.reason == "ImgBB response did not include an image URL"

    @pytest.mark.unit
    async def test_network_error_degrades(self, hosting, generated_base64):
        with aioresponses() as mocked:
            mocked.post(IMGBB_URL, exception=aiohttp.ClientConnectionError("reset by peer"))
            outcome = await hosting.upload_generated_image(generated_base64, "image/png")

        assert outcome.degraded is True
        assert outcome.reason.startswith("ImgBB upload failed")

    @pytest.mark.unit
    async def test_missing_key_degrades_without_request(self, generated_base64):
        service = ImageHostingService(api_key="", upload_url=IMGBB_URL)
        with aioresponses() as mocked:
            outcome = await service.upload_generated_image(generated_base64, "image/png")
            assert not mocked.requests

        assert outcome.degraded is True


class TestUploadProjectImage:
    """Project photos propagate hosting failures"""

    @pytest.mark.unit
    async def test_success_returns_url(self, hosting, sample_image_blob):
        with aioresponses() as mocked:
            mocked.post(IMGBB_URL, status=200, payload=IMGBB_SUCCESS)
            url = await hosting.upload_project_image("user-1", "project-1", sample_image_blob)

        assert url == "https://i.ibb.co/abc123/gemini.png"

    @pytest.mark.unit
    async def test_failure_raises(self, hosting, sample_image_blob):
        with aioresponses() as mocked:
            mocked.post(IMGBB_URL, status=400, body="Bad Request")
            with pytest.raises(ImageHostingError) as exc_info:
                await hosting.upload_project_image("user-1", "project-1", sample_image_blob)

        assert exc_info.value.status_code == 400

    @pytest.mark.unit
    async def test_missing_url_in_response_raises(self, hosting, sample_image_blob):
        with aioresponses() as mocked:
            mocked.post(IMGBB_URL, status=200, payload={"success": True, "data": {}})
            with pytest.raises(ImageHostingError):
                await hosting.upload_project_image("user-1", "project-1", sample_image_blob)
