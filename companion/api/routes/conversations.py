"""
Conversation History Routes - read access to conversation threads.

- GET /conversations?patientId=...       : recent threads with their latest message
- GET /conversations/{id}/messages       : one full thread
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from companion.api.dependencies import get_db_session
from companion.core.auth import Caller, get_current_caller
from companion.core.exceptions import ValidationError
from companion.core.logging_config import get_logger
from companion.core.validators import validate_identifier
from companion.models.common import ErrorResponse
from companion.models.conversation import ConversationListResponse, ConversationMessagesResponse
from companion.services import history_service
from companion.services.access import authorize_patient_access, require

logger = get_logger(__name__)

router = APIRouter(
    prefix="/conversations",
    tags=["Conversations"],
    responses={
        403: {"model": ErrorResponse, "description": "No access to this patient"},
        404: {"model": ErrorResponse, "description": "Patient or conversation not found"},
    },
)


@router.get(
    "",
    response_model=ConversationListResponse,
    summary="List recent conversations",
)
def list_conversations(
    patientId: Optional[str] = Query(default=None, description="Patient whose threads to list"),
    caller: Caller = Depends(get_current_caller),
    session: Session = Depends(get_db_session),
) -> ConversationListResponse:
    """Up to 10 threads, most recently active first, each with its newest message."""
    if not patientId:
        raise ValidationError("patientId query parameter is required", field="patientId")

    is_valid, error = validate_identifier(patientId, "patientId")
    if not is_valid:
        raise ValidationError(error, field="patientId")

    require(authorize_patient_access(session, caller.user_id, patientId))

    conversations = history_service.list_recent_conversations(session, patientId)
    logger.debug(f"Listed {len(conversations)} conversations for patient {patientId}")

    return ConversationListResponse.model_validate({"conversations": conversations})


@router.get(
    "/{conversation_id}/messages",
    response_model=ConversationMessagesResponse,
    summary="Get all messages of a conversation",
)
def get_conversation_messages(
    conversation_id: str,
    caller: Caller = Depends(get_current_caller),
    session: Session = Depends(get_db_session),
) -> ConversationMessagesResponse:
    conversation = history_service.get_conversation(session, conversation_id)
    require(authorize_patient_access(session, caller.user_id, conversation.patient_id))

    return ConversationMessagesResponse.model_validate(
        history_service.get_thread_messages(session, conversation)
    )
