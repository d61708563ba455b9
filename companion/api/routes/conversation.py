"""
Conversation Route - the companion's conversation endpoint.

POST /conversation runs one message through the conversation pipeline and
returns the companion's reply.
"""
from fastapi import APIRouter, Depends

from companion.api.dependencies import enforce_rate_limit, get_conversation_service
from companion.core.auth import Caller
from companion.core.exceptions import ValidationError
from companion.core.logging_config import get_logger
from companion.core.validators import validate_identifier, validate_message
from companion.models.common import ErrorResponse
from companion.models.conversation import ConversationRequest, ConversationResponse
from companion.services.conversation_service import ConversationService

logger = get_logger(__name__)

router = APIRouter(
    prefix="/conversation",
    tags=["Conversation"],
    responses={
        400: {"model": ErrorResponse, "description": "Invalid request"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
        500: {"model": ErrorResponse, "description": "Memory or LLM service failure"},
    },
)


@router.post(
    "",
    response_model=ConversationResponse,
    summary="Send a message to the companion",
    description="""
    Send one message and receive the companion's reply.

    - Patients talk for themselves; caregivers must pass `patientId`.
    - Omit `conversationId` to start a new thread. The returned
      `conversationId` continues it.
    - The reply is grounded in the patient's memory profile and up to three
      related past exchanges.
    """,
)
def send_message(
    request: ConversationRequest,
    caller: Caller = Depends(enforce_rate_limit),
    service: ConversationService = Depends(get_conversation_service),
) -> ConversationResponse:
    is_valid, sanitized_message, error = validate_message(request.message)
    if not is_valid:
        raise ValidationError(error, field="message")

    for field, value in (("conversationId", request.conversationId), ("patientId", request.patientId)):
        is_valid, error = validate_identifier(value, field)
        if not is_valid:
            raise ValidationError(error, field=field)

    logger.info(
        f"Processing message: caller={caller.user_id[:12]}, "
        f"conversation={request.conversationId or 'new'}, length={len(sanitized_message)}"
    )

    turn = service.handle_message(
        caller.user_id,
        sanitized_message,
        conversation_id=request.conversationId,
        patient_id=request.patientId,
    )

    return ConversationResponse(conversationId=turn.conversation_id, response=turn.response)
