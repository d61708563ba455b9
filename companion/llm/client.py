"""
LLM Client for Groq API integration.

This module provides a clean interface to the Groq chat-completion API:
- companion responses (fixed model, fixed max output length)
- behavioral insight analysis (structured JSON output)

Every call is attempted exactly once; there is no fallback model and no
retry. A failure surfaces as ``LLMError`` and the caller decides whether the
request can survive it.
"""
import json
import re
from typing import List, Optional

from groq import Groq, APIError
from pydantic import ValidationError as PydanticValidationError

from companion.core.config import get_settings
from companion.core.exceptions import (
    ServiceNotConfiguredError,
    UnexpectedResponseShape,
    UpstreamServiceError,
)
from companion.core.logging_config import get_logger
from companion.llm.prompts import get_insights_system_prompt, get_insights_user_prompt
from companion.models.insights import BehavioralInsights

logger = get_logger(__name__)

SERVICE_NAME = "LLM service"

_JSON_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")


class LLMError(UpstreamServiceError):
    """
    Raised when a chat-completion call fails.

    Wraps all Groq API errors into a single type for the service layer.
    """

    def __init__(self, message: str = "Failed to generate response", details: Optional[str] = None):
        super().__init__(message, service=SERVICE_NAME, details=details)


class LLMClient:
    """
    Client for the Groq chat-completion API.

    The underlying SDK client is created once and reused; it holds no
    per-request state.

    Example:
        >>> client = LLMClient()
        >>> client.generate_response("You are a kind companion.", "What day is it?")
        'Today is Wednesday.'
    """

    def __init__(self, api_key: Optional[str] = None, groq_client: Optional[Groq] = None):
        """
        Initialize the client.

        Args:
            api_key: Groq API key, defaults to GROQ_API_KEY
            groq_client: Prebuilt SDK client (tests pass a stub)
        """
        self.settings = get_settings()
        self.model = self.settings.llm_model
        self.max_tokens = self.settings.llm_max_tokens

        api_key = api_key or self.settings.groq_api_key
        if groq_client is not None:
            self._groq = groq_client
        elif api_key:
            self._groq = Groq(api_key=api_key)
        else:
            self._groq = None
            logger.warning("GROQ_API_KEY not set; LLM calls will fail until configured")

        logger.info(f"LLM client initialized: model={self.model}, max_tokens={self.max_tokens}")

    def generate_response(self, system_prompt: str, user_message: str) -> str:
        """
        Generate the companion's reply to one patient message.

        Args:
            system_prompt: Prompt assembled from the patient's memory
            user_message: The patient's message, verbatim

        Returns:
            Text of the first completion choice

        Raises:
            LLMError: the API call failed
            UnexpectedResponseShape: the completion contained no text
        """
        text = self._complete(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            ],
            max_tokens=self.max_tokens,
        )
        logger.info(f"Generated response: {len(text)} chars")
        return text

    def analyze_conversation_history(
        self,
        transcript: str,
        patient_name: str,
        age: Optional[int] = None,
        diagnosis_stage: Optional[str] = None,
        routine_focus: Optional[str] = None,
    ) -> BehavioralInsights:
        """
        Produce structured behavioral insights from a conversation transcript.

        Raises:
            LLMError: the API call failed
            UnexpectedResponseShape: the reply was not the expected JSON
        """
        text = self._complete(
            model=self.settings.insights_model,
            messages=[
                {
                    "role": "system",
                    "content": get_insights_system_prompt(
                        patient_name, age, diagnosis_stage, routine_focus
                    ),
                },
                {"role": "user", "content": get_insights_user_prompt(transcript)},
            ],
            max_tokens=self.settings.insights_max_tokens,
            temperature=self.settings.insights_temperature,
        )
        return parse_insights(text)

    def _complete(self, model: str, messages: List[dict], max_tokens: int, temperature: Optional[float] = None) -> str:
        if self._groq is None:
            raise ServiceNotConfiguredError("LLM")

        kwargs = {"model": model, "messages": messages, "max_tokens": max_tokens}
        if temperature is not None:
            kwargs["temperature"] = temperature

        try:
            completion = self._groq.chat.completions.create(**kwargs)
        except APIError as e:
            logger.error(f"Groq API error ({model}): {e}")
            raise LLMError(details=str(e)) from e

        choices = getattr(completion, "choices", None) or []
        if not choices:
            raise UnexpectedResponseShape(SERVICE_NAME, details="completion has no choices")

        message = getattr(choices[0], "message", None)
        content = getattr(message, "content", None)
        if not isinstance(content, str) or not content.strip():
            raise UnexpectedResponseShape(SERVICE_NAME, details="completion has no text content")

        return content


def parse_insights(text: str) -> BehavioralInsights:
    """Parse an insights reply, tolerating a ```json fenced block."""
    match = _JSON_FENCE.search(text)
    json_text = match.group(1) if match else text

    try:
        data = json.loads(json_text.strip())
        return BehavioralInsights.model_validate(data)
    except (ValueError, PydanticValidationError) as e:
        logger.error(f"Insights JSON parse error: {e}; response={text[:200]}")
        raise UnexpectedResponseShape(SERVICE_NAME, details="insights reply is not valid JSON") from e
