"""
Speech-to-text API route for voice commands
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import JSONResponse

from exteriorai.core.dependencies import get_transcription_service
from exteriorai.core.errors import ExteriorAIError
from exteriorai.schemas.transcription import TranscriptionResponse
from exteriorai.services.media import read_audio_clip
from exteriorai.services.transcription_service import TranscriptionService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/transcribe", response_model=TranscriptionResponse)
async def transcribe(
    audio: Optional[UploadFile] = File(None),
    transcriber: TranscriptionService = Depends(get_transcription_service),
):
    """Transcribe the multipart `audio` field"""
    try:
        clip = await read_audio_clip(audio)
        result = await transcriber.transcribe(clip)
    except ExteriorAIError:
        raise
    except Exception as e:
        logger.error(f"Error in transcribe API: {e}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to process transcription request", "details": str(e)},
        )

    return TranscriptionResponse(transcript=result.text)
