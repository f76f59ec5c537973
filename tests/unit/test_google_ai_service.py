"""
Unit tests for the Gemini image generation client
Tests prompt enhancement, reference image resolution and response parsing
"""
import base64
import json

import aiohttp
import pytest
from aioresponses import aioresponses
from google.genai import errors as genai_errors
from google.genai import types

from exteriorai.core.errors import (
    GenerationServiceError,
    MalformedUpstreamResponse,
    MissingPromptError,
    NoImageGeneratedError,
    ServiceNotConfiguredError,
)
from exteriorai.services.google_ai_service import (
    REALISM_SUFFIX,
    REFERENCE_MIME_TYPE,
    GoogleAIStudioService,
    ReferenceImage,
    enhance_prompt,
)

FIRE_PIT_ENHANCED = (
    "add a fire pit make it look ultra realistic as well while keeping the unchangeable natural features"
)


def sent_parts(mock_client):
    """Parts of the single user turn passed to generate_content"""
    contents = mock_client.models.generate_content.call_args.kwargs["contents"]
    assert len(contents) == 1
    return contents[0].parts


class TestPromptEnhancement:
    """Tests for the fixed realism suffix"""

    @pytest.mark.unit
    def test_suffix_is_appended(self):
        assert enhance_prompt("add a fire pit") == FIRE_PIT_ENHANCED

    @pytest.mark.unit
    def test_enhancement_is_deterministic(self):
        assert enhance_prompt("paint the fence white") == enhance_prompt("paint the fence white")
        assert enhance_prompt("x").endswith(REALISM_SUFFIX)


class TestServiceInitialization:
    """Tests for Google AI service initialization"""

    @pytest.mark.unit
    def test_unconfigured_service(self):
        service = GoogleAIStudioService(api_key="")
        assert service.genai_configured is False
        assert service.genai_client is None

    @pytest.mark.unit
    def test_usage_stats_initialized(self, google_ai):
        stats = google_ai.usage_stats
        assert stats["total_requests"] == 0
        assert stats["reference_fallbacks"] == 0

    @pytest.mark.unit
    async def test_unconfigured_service_fails_at_call_time(self):
        service = GoogleAIStudioService(api_key="")
        with pytest.raises(ServiceNotConfiguredError):
            await service.generate_image("add a pond")


class TestReferenceImageResolution:
    """Tests for turning originalImageUrl into inline image bytes"""

    @pytest.mark.unit
    async def test_no_reference(self, google_ai):
        reference = await google_ai.resolve_reference_image(None)
        assert reference.source == "none"
        assert not reference.available

    @pytest.mark.unit
    async def test_remote_reference_is_fetched_once(self, google_ai, sample_jpeg_bytes):
        url = "https://i.ibb.co/before/yard.jpg"
        with aioresponses() as mocked:
            mocked.get(url, status=200, body=sample_jpeg_bytes)
            reference = await google_ai.resolve_reference_image(url)

        assert reference.source == "remote"
        assert reference.data == sample_jpeg_bytes

    @pytest.mark.unit
    async def test_remote_reference_http_error_falls_back(self, google_ai):
        url = "https://i.ibb.co/missing.jpg"
        with aioresponses() as mocked:
            mocked.get(url, status=404)
            reference = await google_ai.resolve_reference_image(url)

        assert reference.source == "fetch_failed"
        assert reference.reason == "HTTP 404"
        assert google_ai.usage_stats["reference_fallbacks"] == 1

    @pytest.mark.unit
    async def test_remote_reference_network_error_falls_back(self, google_ai):
        url = "https://unreachable.example/yard.jpg"
        with aioresponses() as mocked:
            mocked.get(url, exception=aiohttp.ClientConnectionError("connection refused"))
            reference = await google_ai.resolve_reference_image(url)

        assert reference.source == "fetch_failed"
        assert not reference.available

    @pytest.mark.unit
    async def test_data_uri_is_decoded_without_network(self, google_ai, sample_image_bytes, sample_data_uri):
        # Any outbound request would fail inside aioresponses with nothing registered
        with aioresponses():
            reference = await google_ai.resolve_reference_image(sample_data_uri)

        assert reference.source == "inline"
        assert reference.data == sample_image_bytes

    @pytest.mark.unit
    async def test_data_uri_uses_payload_after_first_comma(self, google_ai):
        payload = base64.b64encode(b"before-photo").decode()
        reference = await google_ai.resolve_reference_image(f"data:image/jpeg;base64,{payload}")
        assert reference.data == b"before-photo"

    @pytest.mark.unit
    async def test_line_wrapped_data_uri_is_decoded(self, google_ai, sample_image_bytes):
        encoded = base64.encodebytes(sample_image_bytes).decode()
        assert "\n" in encoded

        reference = await google_ai.resolve_reference_image(f"data:image/png;base64,{encoded}")

        assert reference.source == "inline"
        assert reference.data == sample_image_bytes

    @pytest.mark.unit
    async def test_undecodable_data_uri_falls_back(self, google_ai):
        reference = await google_ai.resolve_reference_image("data:image/png;base64,@@not-base64@@")
        assert reference.source == "fetch_failed"

    @pytest.mark.unit
    async def test_unsupported_scheme_falls_back(self, google_ai):
        reference = await google_ai.resolve_reference_image("ftp://example.com/yard.jpg")
        assert reference.source == "fetch_failed"


class TestRequestContents:
    """Tests for the request payload built for Gemini"""

    @pytest.mark.unit
    def test_text_only_request(self, google_ai):
        contents = google_ai.build_contents(FIRE_PIT_ENHANCED, ReferenceImage(source="none"))
        parts = contents[0].parts
        assert contents[0].role == "user"
        assert len(parts) == 1
        assert parts[0].text == FIRE_PIT_ENHANCED

    @pytest.mark.unit
    def test_reference_is_sent_as_jpeg_before_text(self, google_ai, sample_image_bytes):
        reference = ReferenceImage(source="inline", data=sample_image_bytes)
        parts = google_ai.build_contents("prompt", reference)[0].parts

        assert len(parts) == 2
        assert parts[0].inline_data.mime_type == REFERENCE_MIME_TYPE
        assert parts[0].inline_data.data == sample_image_bytes
        assert parts[1].text == "prompt"


class TestResponseParsing:
    """Tests for scanning the parts of the first candidate"""

    @pytest.mark.unit
    def test_last_image_and_last_text_win(self, genai_response):
        response = genai_response(
            types.Part(text="first caption"),
            types.Part(inline_data=types.Blob(mime_type="image/png", data=b"first-image")),
            types.Part(text="second caption"),
            types.Part(inline_data=types.Blob(mime_type="image/jpeg", data=b"second-image")),
        )

        image_bytes, mime_type, caption = GoogleAIStudioService.parse_response(response)

        assert image_bytes == b"second-image"
        assert mime_type == "image/jpeg"
        assert caption == "second caption"

    @pytest.mark.unit
    def test_non_image_inline_data_is_ignored(self, genai_response):
        response = genai_response(
            types.Part(inline_data=types.Blob(mime_type="image/png", data=b"the-image")),
            types.Part(inline_data=types.Blob(mime_type="audio/wav", data=b"noise")),
        )

        image_bytes, mime_type, caption = GoogleAIStudioService.parse_response(response)

        assert image_bytes == b"the-image"
        assert mime_type == "image/png"
        assert caption == ""

    @pytest.mark.unit
    def test_no_candidates(self):
        image_bytes, _, caption = GoogleAIStudioService.parse_response(types.GenerateContentResponse(candidates=[]))
        assert image_bytes is None
        assert caption == ""

    @pytest.mark.unit
    def test_image_part_without_data_is_malformed(self, genai_response):
        response = genai_response(types.Part(inline_data=types.Blob(mime_type="image/png")))
        with pytest.raises(MalformedUpstreamResponse):
            GoogleAIStudioService.parse_response(response)


class TestGenerateImage:
    """Tests for the full generate_image call"""

    @pytest.mark.unit
    async def test_fire_pit_text_only(self, google_ai, mock_google_ai_client, genai_response):
        mock_google_ai_client.models.generate_content.return_value = genai_response(
            types.Part(text="Here's your fire pit"),
            types.Part(inline_data=types.Blob(mime_type="image/png", data=b"fire-pit-png")),
        )

        result = await google_ai.generate_image("add a fire pit")

        parts = sent_parts(mock_google_ai_client)
        assert len(parts) == 1
        assert parts[0].text == FIRE_PIT_ENHANCED

        assert result.caption == "Here's your fire pit"
        assert result.mime_type == "image/png"
        assert base64.b64decode(result.image_base64) == b"fire-pit-png"
        assert result.reference.source == "none"

    @pytest.mark.unit
    async def test_request_asks_for_image_and_text(self, google_ai, mock_google_ai_client, genai_response):
        mock_google_ai_client.models.generate_content.return_value = genai_response(
            types.Part(inline_data=types.Blob(mime_type="image/png", data=b"img"))
        )

        await google_ai.generate_image("add a hedge")

        kwargs = mock_google_ai_client.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "test-image-model"
        assert set(kwargs["config"].response_modalities) == {"IMAGE", "TEXT"}

    @pytest.mark.unit
    async def test_reachable_reference_is_embedded(
        self, google_ai, mock_google_ai_client, genai_response, sample_jpeg_bytes
    ):
        url = "https://i.ibb.co/before/yard.jpg"
        mock_google_ai_client.models.generate_content.return_value = genai_response(
            types.Part(inline_data=types.Blob(mime_type="image/png", data=b"after"))
        )

        with aioresponses() as mocked:
            mocked.get(url, status=200, body=sample_jpeg_bytes)
            result = await google_ai.generate_image("add a fire pit", url)

        parts = sent_parts(mock_google_ai_client)
        assert len(parts) == 2
        assert parts[0].inline_data.data == sample_jpeg_bytes
        assert parts[0].inline_data.mime_type == "image/jpeg"
        assert parts[1].text == FIRE_PIT_ENHANCED
        assert result.reference.source == "remote"

    @pytest.mark.unit
    async def test_unreachable_reference_generates_text_only(self, google_ai, mock_google_ai_client, genai_response):
        url = "https://unreachable.example/yard.jpg"
        mock_google_ai_client.models.generate_content.return_value = genai_response(
            types.Part(inline_data=types.Blob(mime_type="image/png", data=b"after"))
        )

        with aioresponses() as mocked:
            mocked.get(url, exception=aiohttp.ClientConnectionError("connection refused"))
            result = await google_ai.generate_image("add a fire pit", url)

        parts = sent_parts(mock_google_ai_client)
        assert len(parts) == 1
        assert parts[0].text == FIRE_PIT_ENHANCED
        assert result.reference.source == "fetch_failed"

    @pytest.mark.unit
    async def test_empty_prompt_makes_no_call(self, google_ai, mock_google_ai_client):
        for prompt in ["", "   ", None]:
            with pytest.raises(MissingPromptError):
                await google_ai.generate_image(prompt)

        mock_google_ai_client.models.generate_content.assert_not_called()

    @pytest.mark.unit
    async def test_no_image_part(self, google_ai, mock_google_ai_client, genai_response):
        mock_google_ai_client.models.generate_content.return_value = genai_response(
            types.Part(text="I can't do that")
        )

        with pytest.raises(NoImageGeneratedError) as exc_info:
            await google_ai.generate_image("add a volcano")

        assert exc_info.value.status_code == 400
        assert google_ai.usage_stats["failed_requests"] == 1

    @pytest.mark.unit
    async def test_upstream_error_is_passed_through(self, google_ai, mock_google_ai_client):
        error_body = {"error": {"code": 429, "message": "Resource exhausted", "status": "RESOURCE_EXHAUSTED"}}
        mock_google_ai_client.models.generate_content.side_effect = genai_errors.ClientError(429, error_body)

        with pytest.raises(GenerationServiceError) as exc_info:
            await google_ai.generate_image("add a pergola")

        assert exc_info.value.status_code == 429
        assert json.loads(exc_info.value.details) == error_body
        assert mock_google_ai_client.models.generate_content.call_count == 1
