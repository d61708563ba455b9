"""
History Service - read side of conversation threads.

Used by the patient home screen ("memory moments") and the caregiver
transcript view. Access checks happen before these functions are called.
"""
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from companion.core.exceptions import NotFoundError
from companion.database.models import Conversation, Message

RECENT_CONVERSATION_LIMIT = 10


def get_conversation(session: Session, conversation_id: str) -> Conversation:
    conversation = session.get(Conversation, conversation_id)
    if conversation is None:
        raise NotFoundError("Conversation not found", details=f"conversation_id={conversation_id}")
    return conversation


def list_recent_conversations(
    session: Session,
    patient_id: str,
    limit: int = RECENT_CONVERSATION_LIMIT,
) -> List[Dict[str, Any]]:
    """
    Most recently active threads, each with only its newest message.

    Returns:
        List of conversation dicts with a one-element (or empty) ``messages`` list
    """
    conversations = (
        session.query(Conversation)
        .filter(Conversation.patient_id == patient_id)
        .order_by(Conversation.last_message_at.desc())
        .limit(limit)
        .all()
    )

    summaries = []
    for conversation in conversations:
        latest = (
            session.query(Message)
            .filter(Message.conversation_id == conversation.id)
            .order_by(Message.timestamp.desc(), Message.id.desc())
            .first()
        )
        summary = conversation.to_dict()
        summary.pop("endedAt")
        summary["messages"] = [latest.to_dict()] if latest else []
        summaries.append(summary)

    return summaries


def get_thread_messages(session: Session, conversation: Conversation) -> Dict[str, Any]:
    """All messages of a thread in timestamp order, plus thread metadata."""
    messages = (
        session.query(Message)
        .filter(Message.conversation_id == conversation.id)
        .order_by(Message.timestamp.asc(), Message.id.asc())
        .all()
    )

    detail = conversation.to_dict()
    detail["messageCount"] = len(messages)

    return {
        "conversation": detail,
        "messages": [message.to_dict() for message in messages],
    }
