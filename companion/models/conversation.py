"""
Request and Response models for the conversation endpoints.

Field names follow the JSON contract used by the web and voice clients
(camelCase).
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class ConversationRequest(BaseModel):
    """
    Request model for POST /conversation.

    Attributes:
        message: What the patient (or caregiver) said.
        conversationId: Existing thread to append to; a new thread is created if omitted.
        patientId: Required when a caregiver sends on behalf of a patient.
    """
    message: str = Field(
        ...,
        min_length=1,
        description="The user's message",
        examples=["What day is it today?"]
    )
    conversationId: Optional[str] = Field(
        default=None,
        description="Existing conversation thread id"
    )
    patientId: Optional[str] = Field(
        default=None,
        description="Target patient (caregivers only)"
    )


class ConversationResponse(BaseModel):
    """Response model for POST /conversation."""
    conversationId: str = Field(..., description="Thread the exchange was written to")
    response: str = Field(..., description="The companion's reply")


class MessageOut(BaseModel):
    id: int
    role: str
    content: str
    timestamp: datetime
    edited: bool = False
    editedAt: Optional[datetime] = None


class ConversationSummary(BaseModel):
    """One thread in GET /conversations, with its most recent message."""
    id: str
    title: str
    startedAt: datetime
    lastMessageAt: datetime
    messages: List[MessageOut] = Field(default_factory=list)


class ConversationListResponse(BaseModel):
    conversations: List[ConversationSummary]


class ConversationDetail(BaseModel):
    id: str
    title: str
    startedAt: datetime
    lastMessageAt: datetime
    endedAt: Optional[datetime] = None
    messageCount: int


class ConversationMessagesResponse(BaseModel):
    """Response model for GET /conversations/{id}/messages."""
    conversation: ConversationDetail
    messages: List[MessageOut]
