"""
Conversation Service - the companion's conversation pipeline.

One patient message runs through a fixed sequence:

1. Resolve who is talking and for which patient
2. Get or create the conversation thread
3. Store the user message
4. Fetch the patient's core memory            (load-bearing)
5. Search archival memory for related history (best-effort)
6. Build the system prompt
7. Generate the reply                         (load-bearing)
8. Store the reply
9. Store the exchange in archival memory      (best-effort)
10. Bump the thread's last-activity timestamp

A load-bearing failure aborts the request; work committed before it (the
thread, the user message) stays. A best-effort failure is logged and the
pipeline continues. Nothing is retried and nothing is deduplicated: sending
the same message twice without a conversationId creates two threads.
"""
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.orm import Session

from companion.core.exceptions import AccessDeniedError, AgentNotConfiguredError, NotFoundError
from companion.core.logging_config import get_logger
from companion.database.models import Caregiver, Conversation, Message, MessageRole, Patient, utc_now
from companion.llm.client import LLMClient
from companion.llm.prompts import build_system_prompt
from companion.memory.agent_client import ARCHIVAL_SEARCH_TOP_K, MemoryAgentClient
from companion.memory.schemas import ArchivalPassage, MemoryDocument
from companion.services.access import require, resolve_conversation_identity
from companion.services.results import FailureKind, run_step

logger = get_logger(__name__)


@dataclass(frozen=True)
class ConversationTurn:
    """Result of one processed message."""
    conversation_id: str
    response: str


class ConversationService:
    """
    Runs the conversation pipeline for one request.

    The database session is request-scoped; the memory and LLM clients are
    shared, read-only handles passed in by the caller.

    Example:
        >>> service = ConversationService(session, memory_client, llm_client)
        >>> turn = service.handle_message("user_abc", "What day is it today?")
        >>> turn.response
        'Today is Wednesday.'
    """

    def __init__(self, session: Session, memory_client: MemoryAgentClient, llm_client: LLMClient):
        self.session = session
        self.memory_client = memory_client
        self.llm_client = llm_client

    def handle_message(
        self,
        user_id: str,
        message: str,
        conversation_id: Optional[str] = None,
        patient_id: Optional[str] = None,
    ) -> ConversationTurn:
        """
        Process one message and return the companion's reply.

        Args:
            user_id: Authenticated caller
            message: Sanitized, non-empty message text
            conversation_id: Thread to append to (None = new thread)
            patient_id: Target patient when the caller is a caregiver

        Raises:
            ValidationError: caregiver did not name a patient
            NotFoundError: unknown caller, patient or thread
            AccessDeniedError: thread belongs to another patient
            AgentNotConfiguredError: patient has no memory agent
            UpstreamServiceError: memory fetch or generation failed
        """
        identity = require(resolve_conversation_identity(self.session, user_id, patient_id))
        patient = identity.patient

        if not patient.agent_id:
            raise AgentNotConfiguredError(patient.id)
        agent_id = patient.agent_id

        conversation = self._get_or_create_thread(patient, identity.caregiver, conversation_id)

        self._append_message(conversation, MessageRole.USER, message)

        memory = run_step(
            "fetch_core_memory",
            lambda: self.memory_client.get_core_memory(agent_id),
            FailureKind.FATAL,
        ).unwrap()

        passages: List[ArchivalPassage] = run_step(
            "search_archival",
            lambda: self.memory_client.search_archival(agent_id, message, ARCHIVAL_SEARCH_TOP_K),
            FailureKind.RECOVERABLE,
            fallback=[],
        ).value

        system_prompt = self._build_prompt(memory, passages)

        response_text = run_step(
            "generate_response",
            lambda: self.llm_client.generate_response(system_prompt, message),
            FailureKind.FATAL,
        ).unwrap()

        self._append_message(conversation, MessageRole.ASSISTANT, response_text)

        run_step(
            "insert_archival",
            lambda: self.memory_client.insert_archival(agent_id, message, response_text),
            FailureKind.RECOVERABLE,
        )

        conversation.last_message_at = utc_now()
        self.session.commit()

        logger.info(
            f"Conversation turn complete: conversation={conversation.id}, "
            f"patient={patient.id}, passages={len(passages)}, response_length={len(response_text)}"
        )

        return ConversationTurn(conversation_id=conversation.id, response=response_text)

    def _get_or_create_thread(
        self,
        patient: Patient,
        caregiver: Optional[Caregiver],
        conversation_id: Optional[str],
    ) -> Conversation:
        if conversation_id:
            conversation = self.session.get(Conversation, conversation_id)
            if conversation is None:
                raise NotFoundError("Conversation not found", details=f"conversation_id={conversation_id}")
            if conversation.patient_id != patient.id:
                raise AccessDeniedError("Conversation does not belong to this patient")
            return conversation

        now = utc_now()
        conversation = Conversation(
            patient_id=patient.id,
            caregiver_id=caregiver.id if caregiver else None,
            started_at=now,
            last_message_at=now,
        )
        self.session.add(conversation)
        self.session.commit()

        logger.info(
            f"Created conversation {conversation.id} for patient {patient.id}"
            + (f" (caregiver {caregiver.id})" if caregiver else "")
        )
        return conversation

    def _append_message(self, conversation: Conversation, role: str, content: str) -> Message:
        message = Message(
            conversation_id=conversation.id,
            role=role,
            content=content,
            timestamp=utc_now(),
        )
        self.session.add(message)
        self.session.commit()
        logger.debug(f"Stored {role} message in conversation {conversation.id}")
        return message

    def _build_prompt(self, memory: MemoryDocument, passages: List[ArchivalPassage]) -> str:
        if passages:
            logger.info(f"Using {len(passages)} archival passages as context")
        return build_system_prompt(memory, passages)
