"""
Google AI Studio service for generating transformed exterior images with Gemini
"""
import asyncio
import base64
import binascii
import json
import logging
import time
from dataclasses import dataclass
from typing import List, Optional

import aiohttp
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from exteriorai.core.config import settings
from exteriorai.core.errors import (
    GenerationServiceError,
    MalformedUpstreamResponse,
    MissingPromptError,
    NoImageGeneratedError,
    ServiceNotConfiguredError,
)

logger = logging.getLogger(__name__)

REALISM_SUFFIX = "make it look ultra realistic as well while keeping the unchangeable natural features"

# Reference images are always declared as JPEG, whatever their real encoding
REFERENCE_MIME_TYPE = "image/jpeg"


def enhance_prompt(prompt: str) -> str:
    """Append the fixed realism instruction to the user's request"""
    return f"{prompt} {REALISM_SUFFIX}"


@dataclass
class ReferenceImage:
    """
    Outcome of resolving the optional "before" image.

    source is one of:
      remote       fetched over HTTP(S)
      inline       decoded from a data URI, no network call
      none         no reference was supplied
      fetch_failed a reference was supplied but could not be obtained;
                   generation continues text-only
    """

    source: str
    data: Optional[bytes] = None
    reason: Optional[str] = None

    @property
    def available(self) -> bool:
        return self.data is not None


@dataclass
class GeneratedImage:
    """Result from a Gemini image generation call"""

    image_base64: str
    mime_type: str
    caption: str
    reference: ReferenceImage
    processing_time: float = 0.0


class GoogleAIStudioService:
    """Service for Google AI Studio integration"""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        """Initialize Google AI Studio service"""
        self.api_key = settings.google_ai_api_key if api_key is None else api_key
        self.model = model or settings.google_ai_image_model
        self.session: Optional[aiohttp.ClientSession] = None
        self.usage_stats = {
            "total_requests": 0,
            "successful_requests": 0,
            "failed_requests": 0,
            "reference_fallbacks": 0,
            "total_processing_time": 0.0,
        }

        if self.api_key:
            self.genai_client = genai.Client(api_key=self.api_key)
            self.genai_configured = True

            if len(self.api_key) > 12:
                masked_key = f"{self.api_key[:8]}...{self.api_key[-4:]}"
                logger.info(f"Google AI API Key loaded: {masked_key}")

            logger.info(f"Google GenAI Client initialized for {self.model}")
        else:
            self.genai_configured = False
            self.genai_client = None
            logger.warning("Google AI API key not configured - image generation will not be available")

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session"""
        if self.session is None or self.session.closed:
            timeout = aiohttp.ClientTimeout(total=settings.http_timeout)
            self.session = aiohttp.ClientSession(timeout=timeout)
        return self.session

    async def _download_image(self, image_url: str) -> ReferenceImage:
        """Download the reference image once. Failures degrade, they never raise."""
        try:
            session = await self._get_session()
            async with session.get(image_url) as response:
                if 200 <= response.status < 300:
                    image_bytes = await response.read()
                    logger.info(f"Fetched reference image ({len(image_bytes)} bytes)")
                    return ReferenceImage(source="remote", data=image_bytes)

                logger.warning(f"Failed to fetch reference image from {image_url}: HTTP {response.status}")
                return ReferenceImage(source="fetch_failed", reason=f"HTTP {response.status}")
        except asyncio.TimeoutError:
            logger.warning(f"Timeout fetching reference image: {image_url}")
            return ReferenceImage(source="fetch_failed", reason="Timeout")
        except (aiohttp.ClientError, OSError, ValueError) as e:
            logger.warning(f"Network error fetching reference image {image_url}: {e}")
            return ReferenceImage(source="fetch_failed", reason=str(e) or type(e).__name__)

    @staticmethod
    def _decode_data_uri(data_uri: str) -> ReferenceImage:
        """Decode the payload after the first comma of a data URI"""
        _, _, payload = data_uri.partition(",")
        # Wrapped base64 (MIME style) is still valid
        payload = "".join(payload.split())
        try:
            image_bytes = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            logger.warning(f"Could not decode inline reference image: {e}")
            return ReferenceImage(source="fetch_failed", reason="Invalid data URI")

        if not image_bytes:
            return ReferenceImage(source="fetch_failed", reason="Empty data URI")
        return ReferenceImage(source="inline", data=image_bytes)

    async def resolve_reference_image(self, original_image_url: Optional[str]) -> ReferenceImage:
        """Turn the optional originalImageUrl into image bytes, or a text-only fallback"""
        if not original_image_url:
            logger.info("No original image provided, generating from scratch")
            return ReferenceImage(source="none")

        if original_image_url.startswith(("http://", "https://")):
            reference = await self._download_image(original_image_url)
        elif original_image_url.startswith("data:"):
            reference = self._decode_data_uri(original_image_url)
        else:
            logger.warning("Unsupported reference image scheme, falling back to text-only generation")
            reference = ReferenceImage(source="fetch_failed", reason="Unsupported reference image")

        if not reference.available:
            self.usage_stats["reference_fallbacks"] += 1
            logger.warning(f"Reference image unavailable ({reference.reason}), using text-only request")
        return reference

    def build_contents(self, enhanced_prompt: str, reference: ReferenceImage) -> List[types.Content]:
        """One user turn: the reference image (if any) followed by the prompt text"""
        parts = []
        if reference.available:
            parts.append(types.Part(inline_data=types.Blob(mime_type=REFERENCE_MIME_TYPE, data=reference.data)))
        parts.append(types.Part.from_text(text=enhanced_prompt))
        return [types.Content(role="user", parts=parts)]

    @staticmethod
    def parse_response(response: types.GenerateContentResponse) -> tuple:
        """
        Scan the parts of the first candidate.

        The last text part is the caption and the last image part is the
        generated image. Returns (image_bytes, mime_type, caption); image_bytes
        is None when no image part was present.
        """
        image_bytes = None
        mime_type = None
        caption = ""

        candidates = response.candidates or []
        if not candidates:
            return image_bytes, mime_type, caption

        content = candidates[0].content
        if content is None or not content.parts:
            return image_bytes, mime_type, caption

        for part in content.parts:
            if part.text is not None:
                caption = part.text
            inline_data = part.inline_data
            if inline_data is not None and (inline_data.mime_type or "").startswith("image/"):
                if not inline_data.data:
                    raise MalformedUpstreamResponse("Image part returned without data")
                image_bytes = inline_data.data
                mime_type = inline_data.mime_type

        return image_bytes, mime_type, caption

    async def generate_image(self, prompt: str, original_image_url: Optional[str] = None) -> GeneratedImage:
        """Generate an "after" image from a prompt and an optional reference image"""
        if not prompt or not prompt.strip():
            raise MissingPromptError()

        if not self.genai_configured:
            raise ServiceNotConfiguredError("GOOGLE_AI_API_KEY is not configured")

        start_time = time.time()
        enhanced_prompt = enhance_prompt(prompt)
        logger.info(f"Sending prompt to Gemini: {enhanced_prompt[:200]}")

        reference = await self.resolve_reference_image(original_image_url)
        contents = self.build_contents(enhanced_prompt, reference)
        generate_content_config = types.GenerateContentConfig(response_modalities=["IMAGE", "TEXT"])

        def _run_generate():
            """Run the blocking generate_content call in a separate thread"""
            return self.genai_client.models.generate_content(
                model=self.model,
                contents=contents,
                config=generate_content_config,
            )

        self.usage_stats["total_requests"] += 1
        loop = asyncio.get_running_loop()
        try:
            response = await asyncio.wait_for(
                loop.run_in_executor(None, _run_generate), timeout=settings.google_ai_timeout
            )
        except asyncio.TimeoutError:
            self.usage_stats["failed_requests"] += 1
            logger.error(f"Gemini request timed out after {settings.google_ai_timeout}s")
            raise GenerationServiceError(status_code=504, details=f"Timed out after {settings.google_ai_timeout}s")
        except genai_errors.APIError as e:
            self.usage_stats["failed_requests"] += 1
            details = json.dumps(e.details) if e.details is not None else e.message
            logger.error(f"Gemini API error {e.code}: {details}")
            raise GenerationServiceError(status_code=e.code or 502, details=details)

        image_bytes, mime_type, caption = self.parse_response(response)
        if image_bytes is None:
            self.usage_stats["failed_requests"] += 1
            logger.warning("Gemini response contained no image part")
            raise NoImageGeneratedError()

        processing_time = time.time() - start_time
        self.usage_stats["successful_requests"] += 1
        self.usage_stats["total_processing_time"] += processing_time
        logger.info(
            f"Generated image ({len(image_bytes)} bytes, {mime_type}) in {processing_time:.2f}s, "
            f"reference={reference.source}"
        )

        return GeneratedImage(
            image_base64=base64.b64encode(image_bytes).decode("utf-8"),
            mime_type=mime_type,
            caption=caption,
            reference=reference,
            processing_time=processing_time,
        )

    async def close(self):
        """Close HTTP session"""
        if self.session:
            await self.session.close()
            self.session = None


# Global service instance
google_ai_service = GoogleAIStudioService()
