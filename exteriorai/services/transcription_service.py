"""
ElevenLabs speech-to-text client for voice commands
"""
import json
import logging
import time
from dataclasses import dataclass
from typing import Optional

import aiohttp

from exteriorai.core.config import settings
from exteriorai.core.errors import MalformedUpstreamResponse, ServiceNotConfiguredError, TranscriptionServiceError
from exteriorai.services.media import AudioClip

logger = logging.getLogger(__name__)


@dataclass
class TranscriptionResult:
    """Transcript of one voice command. An empty transcript is a valid result."""

    text: str


class TranscriptionService:
    """Service for ElevenLabs speech-to-text integration"""

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None, model_id: Optional[str] = None):
        self.api_key = settings.elevenlabs_api_key if api_key is None else api_key
        self.base_url = (base_url or settings.elevenlabs_base_url).rstrip("/")
        self.model_id = model_id or settings.elevenlabs_stt_model
        self.session: Optional[aiohttp.ClientSession] = None

        if not self.api_key:
            logger.warning("ElevenLabs API key not configured - transcription will not be available")

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session"""
        if self.session is None or self.session.closed:
            timeout = aiohttp.ClientTimeout(total=settings.elevenlabs_timeout)
            self.session = aiohttp.ClientSession(timeout=timeout)
        return self.session

    def _build_form(self, clip: AudioClip) -> aiohttp.FormData:
        form = aiohttp.FormData()
        form.add_field("file", clip.data, filename=clip.filename, content_type=clip.content_type)
        form.add_field("model_id", self.model_id)
        return form

    @staticmethod
    def _error_details(body: str) -> str:
        """Structured JSON if the provider sent JSON, otherwise the raw text"""
        try:
            return json.dumps(json.loads(body))
        except ValueError:
            return body

    async def transcribe(self, clip: AudioClip) -> TranscriptionResult:
        """Send one audio clip to the speech-to-text endpoint. Attempted exactly once."""
        if not self.api_key:
            raise ServiceNotConfiguredError("ELEVENLABS_API_KEY is not configured")

        session = await self._get_session()
        url = f"{self.base_url}/speech-to-text"
        headers = {"xi-api-key": self.api_key, "Accept": "application/json"}

        start_time = time.time()
        logger.info(f"Sending {clip.size} bytes to ElevenLabs speech-to-text (model={self.model_id})")

        async with session.post(url, data=self._build_form(clip), headers=headers) as response:
            body = await response.text()
            logger.info(f"ElevenLabs API response status: {response.status}")

            if response.status < 200 or response.status >= 300:
                details = self._error_details(body)
                logger.error(f"ElevenLabs API error {response.status}: {details[:500]}")
                raise TranscriptionServiceError(status_code=response.status, details=details)

        try:
            data = json.loads(body)
        except ValueError:
            raise MalformedUpstreamResponse("Transcription service returned a non-JSON body", details=body[:500])

        if not isinstance(data, dict):
            raise MalformedUpstreamResponse("Transcription service returned an unexpected payload")

        text = data.get("text")
        if text is None:
            text = ""
        elif not isinstance(text, str):
            raise MalformedUpstreamResponse("Transcription text is not a string")

        logger.info(f"Transcription successful in {time.time() - start_time:.2f}s ({len(text)} chars)")
        return TranscriptionResult(text=text)

    async def close(self):
        """Close HTTP session"""
        if self.session:
            await self.session.close()
            self.session = None


# Global service instance
transcription_service = TranscriptionService()
