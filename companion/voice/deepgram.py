"""
Deepgram Client - speech synthesis, transcription and browser tokens.

Thin proxies: one HTTP call each, no retry. The API key stays on the server;
browsers that stream audio directly get a short-lived grant instead.
"""
from typing import Any, Dict, Optional, Tuple

import httpx

from companion.core.config import get_settings
from companion.core.exceptions import (
    ServiceNotConfiguredError,
    UnexpectedResponseShape,
    UpstreamServiceError,
)
from companion.core.logging_config import get_logger

logger = get_logger(__name__)

SERVICE_NAME = "Speech service"

DEEPGRAM_API_BASE = "https://api.deepgram.com"
TTS_MODEL = "aura-asteria-en"
STT_MODEL = "nova-2"
GRANT_TTL_SECONDS = 600


class DeepgramClient:
    """
    Client for the Deepgram REST API.

    Example:
        >>> client = DeepgramClient()
        >>> audio = client.speak("Good morning, Margaret.")
        >>> client.transcribe(audio_bytes, "audio/webm")
        ('Good morning', 0.98)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = DEEPGRAM_API_BASE,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else get_settings().deepgram_api_key
        self._http = httpx.Client(
            base_url=base_url,
            timeout=httpx.Timeout(60.0, connect=10.0),
            transport=transport,
        )
        if not self.api_key:
            logger.warning("DEEPGRAM_API_KEY not set; voice endpoints will fail until configured")

    def close(self) -> None:
        self._http.close()

    def speak(self, text: str) -> bytes:
        """Synthesize ``text`` and return the audio bytes."""
        response = self._post(
            "/v1/speak",
            params={"model": TTS_MODEL},
            json={"text": text},
        )
        logger.info(f"Synthesized {len(text)} chars into {len(response.content)} bytes of audio")
        return response.content

    def transcribe(self, audio: bytes, mime_type: Optional[str] = None) -> Tuple[str, float]:
        """
        Transcribe recorded audio.

        Returns:
            (transcript, confidence); an empty transcript comes back as ("", 0.0)
        """
        response = self._post(
            "/v1/listen",
            params={"model": STT_MODEL, "smart_format": "true"},
            content=audio,
            headers={"Content-Type": mime_type or "audio/webm"},
        )
        payload = self._json(response)

        try:
            alternative = payload["results"]["channels"][0]["alternatives"][0]
        except (KeyError, IndexError, TypeError):
            logger.warning("Transcription returned no alternatives")
            return "", 0.0

        transcript = str(alternative.get("transcript") or "")
        if not transcript:
            return "", 0.0

        confidence = float(alternative.get("confidence") or 0.0)
        logger.info(f"Transcribed {len(audio)} bytes: {len(transcript)} chars, confidence={confidence:.2f}")
        return transcript, confidence

    def grant_token(self, ttl_seconds: int = GRANT_TTL_SECONDS) -> Dict[str, Any]:
        """Request a temporary access token for browser-side streaming."""
        payload = self._json(self._post("/v1/auth/grant", json={"ttl_seconds": ttl_seconds}))

        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise UnexpectedResponseShape(SERVICE_NAME, details="grant has no access_token")

        return {"token": token, "expiresIn": payload.get("expires_in", ttl_seconds)}

    def _post(self, path: str, headers: Optional[Dict[str, str]] = None, **kwargs) -> httpx.Response:
        if not self.api_key:
            raise ServiceNotConfiguredError("Speech")

        request_headers = {"Authorization": f"Token {self.api_key}"}
        request_headers.update(headers or {})

        try:
            response = self._http.post(path, headers=request_headers, **kwargs)
        except httpx.TimeoutException as e:
            raise UpstreamServiceError(f"{SERVICE_NAME} timed out", service=SERVICE_NAME, details=str(e)) from e
        except httpx.HTTPError as e:
            raise UpstreamServiceError(
                f"Failed to reach {SERVICE_NAME.lower()}", service=SERVICE_NAME, details=str(e)
            ) from e

        if response.status_code >= 400:
            logger.error(f"Deepgram error {response.status_code} on {path}: {response.text[:300]}")
            raise UpstreamServiceError(
                f"{SERVICE_NAME} request failed",
                service=SERVICE_NAME,
                details=f"POST {path} status={response.status_code}",
            )
        return response

    def _json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise UnexpectedResponseShape(SERVICE_NAME, details="response is not JSON") from e
