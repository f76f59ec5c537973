"""
Pydantic schemas for speech-to-text
"""
from pydantic import BaseModel


class TranscriptionResponse(BaseModel):
    success: bool = True
    transcript: str = ""
