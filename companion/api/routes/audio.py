"""
Audio Routes - speech synthesis and transcription through Deepgram.

- POST /audio/speak       : text -> audio/mpeg
- POST /audio/transcribe  : recorded audio -> text
- GET  /audio/token       : short-lived token for browser streaming
"""
from typing import Optional

from fastapi import APIRouter, Depends, File, Response, UploadFile

from companion.api.dependencies import enforce_rate_limit, get_deepgram_client
from companion.core.auth import Caller
from companion.core.exceptions import ValidationError
from companion.core.logging_config import get_logger
from companion.models.common import ErrorResponse
from companion.models.voice import SpeakRequest, SpeechTokenResponse, TranscriptionResponse
from companion.voice.deepgram import DeepgramClient

logger = get_logger(__name__)

router = APIRouter(
    prefix="/audio",
    tags=["Audio"],
    responses={
        429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
        500: {"model": ErrorResponse, "description": "Speech service failure"},
    },
)


@router.post(
    "/speak",
    response_class=Response,
    responses={200: {"content": {"audio/mpeg": {}}}},
    summary="Synthesize speech",
)
def speak(
    request: SpeakRequest,
    caller: Caller = Depends(enforce_rate_limit),
    deepgram: DeepgramClient = Depends(get_deepgram_client),
) -> Response:
    text = request.text.strip()
    if not text:
        raise ValidationError("text is required", field="text")

    audio = deepgram.speak(text)
    return Response(content=audio, media_type="audio/mpeg")


@router.post(
    "/transcribe",
    response_model=TranscriptionResponse,
    summary="Transcribe recorded audio",
)
def transcribe(
    audio: Optional[UploadFile] = File(default=None),
    caller: Caller = Depends(enforce_rate_limit),
    deepgram: DeepgramClient = Depends(get_deepgram_client),
) -> TranscriptionResponse:
    if audio is None:
        raise ValidationError("No audio file provided", field="audio")

    audio_bytes = audio.file.read()
    if not audio_bytes:
        raise ValidationError("Audio file is empty", field="audio")

    text, confidence = deepgram.transcribe(audio_bytes, audio.content_type)
    return TranscriptionResponse(text=text, confidence=confidence)


@router.get(
    "/token",
    response_model=SpeechTokenResponse,
    summary="Get a temporary speech token",
)
def speech_token(
    caller: Caller = Depends(enforce_rate_limit),
    deepgram: DeepgramClient = Depends(get_deepgram_client),
) -> SpeechTokenResponse:
    return SpeechTokenResponse.model_validate(deepgram.grant_token())
