"""
Request and Response models for the voice endpoints (speech and LiveKit).
"""
from pydantic import BaseModel, Field


class SpeakRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=2000, description="Text to synthesize")


class TranscriptionResponse(BaseModel):
    text: str
    confidence: float = 0.0


class SpeechTokenResponse(BaseModel):
    token: str
    expiresIn: int


class LiveKitTokenResponse(BaseModel):
    token: str
    url: str
    wsUrl: str
