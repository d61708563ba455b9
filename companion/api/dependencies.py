"""
FastAPI dependencies - request-scoped sessions, shared clients, services.

External clients are created once per process and shared; they hold no
per-request state. Tests replace any of these providers through
``app.dependency_overrides``.
"""
from datetime import datetime
from typing import Generator, Optional

from fastapi import Depends, Response
from sqlalchemy.orm import Session

from companion.core.auth import Caller, get_current_caller
from companion.core.exceptions import RateLimitExceeded, ValidationError
from companion.core.rate_limiter import get_rate_limiter
from companion.core.validators import validate_identifier
from companion.database.connection import get_database
from companion.database.models import Patient
from companion.llm.client import LLMClient
from companion.memory.agent_client import MemoryAgentClient
from companion.services.access import authorize_patient_access, require
from companion.services.conversation_service import ConversationService
from companion.services.insights_service import InsightsService
from companion.services.onboarding_service import OnboardingService
from companion.voice.deepgram import DeepgramClient
from companion.voice.livekit_tokens import LiveKitTokenIssuer


def get_db_session() -> Generator[Session, None, None]:
    """One session per request; closed when the response is sent."""
    with get_database().get_session() as session:
        yield session


# ============================================================
# Shared clients
# ============================================================

_memory_client: Optional[MemoryAgentClient] = None
_llm_client: Optional[LLMClient] = None
_deepgram_client: Optional[DeepgramClient] = None
_livekit_issuer: Optional[LiveKitTokenIssuer] = None


def get_memory_client() -> MemoryAgentClient:
    global _memory_client
    if _memory_client is None:
        _memory_client = MemoryAgentClient()
    return _memory_client


def get_llm_client() -> LLMClient:
    global _llm_client
    if _llm_client is None:
        _llm_client = LLMClient()
    return _llm_client


def get_deepgram_client() -> DeepgramClient:
    global _deepgram_client
    if _deepgram_client is None:
        _deepgram_client = DeepgramClient()
    return _deepgram_client


def get_livekit_issuer() -> LiveKitTokenIssuer:
    global _livekit_issuer
    if _livekit_issuer is None:
        _livekit_issuer = LiveKitTokenIssuer()
    return _livekit_issuer


def close_clients() -> None:
    """Close pooled HTTP connections at shutdown."""
    global _memory_client, _llm_client, _deepgram_client, _livekit_issuer
    if _memory_client is not None:
        _memory_client.close()
    if _deepgram_client is not None:
        _deepgram_client.close()
    _memory_client = _llm_client = _deepgram_client = _livekit_issuer = None


# ============================================================
# Services
# ============================================================

def get_conversation_service(
    session: Session = Depends(get_db_session),
    memory_client: MemoryAgentClient = Depends(get_memory_client),
    llm_client: LLMClient = Depends(get_llm_client),
) -> ConversationService:
    return ConversationService(session, memory_client, llm_client)


def get_onboarding_service(
    session: Session = Depends(get_db_session),
    memory_client: MemoryAgentClient = Depends(get_memory_client),
) -> OnboardingService:
    return OnboardingService(session, memory_client)


def get_insights_service(
    session: Session = Depends(get_db_session),
    llm_client: LLMClient = Depends(get_llm_client),
) -> InsightsService:
    return InsightsService(session, llm_client)


# ============================================================
# Guards
# ============================================================

def enforce_rate_limit(
    response: Response,
    caller: Caller = Depends(get_current_caller),
) -> Caller:
    """
    Count the request against the caller's per-minute budget.

    Adds X-RateLimit-Limit / X-RateLimit-Remaining headers.

    Raises:
        RateLimitExceeded: budget used up (429 with Retry-After)
    """
    rate_limiter = get_rate_limiter()
    is_allowed, remaining = rate_limiter.is_allowed(caller.user_id)

    response.headers["X-RateLimit-Limit"] = str(rate_limiter.limit)
    response.headers["X-RateLimit-Remaining"] = str(remaining)

    if not is_allowed:
        reset_time = rate_limiter.get_reset_time(caller.user_id)
        retry_after = max(1, int((reset_time - datetime.utcnow()).total_seconds()))
        raise RateLimitExceeded(retry_after=retry_after)

    return caller


def get_accessible_patient(
    patient_id: str,
    caller: Caller = Depends(get_current_caller),
    session: Session = Depends(get_db_session),
) -> Patient:
    """Resolve the ``{patient_id}`` path parameter, enforcing patient access."""
    is_valid, error = validate_identifier(patient_id, "patientId")
    if not is_valid:
        raise ValidationError(error, field="patientId")

    return require(authorize_patient_access(session, caller.user_id, patient_id)).patient
