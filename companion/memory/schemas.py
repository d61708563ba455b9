"""
Response schemas for the memory agent service.

The service is reached over plain HTTP, so everything it returns is checked
against these models before the rest of the application sees it. A payload
that does not fit becomes ``UnexpectedResponseShape``.
"""
from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


CORE_MEMORY_LABELS = ("persona", "human", "patient_context")


class MemoryBlock(BaseModel):
    model_config = ConfigDict(extra="ignore")

    label: str
    value: Optional[str] = ""
    description: Optional[str] = None


class AgentMemory(BaseModel):
    model_config = ConfigDict(extra="ignore")

    blocks: List[MemoryBlock] = Field(default_factory=list)


class AgentState(BaseModel):
    """The parts of an agent record the companion reads."""
    model_config = ConfigDict(extra="ignore")

    id: str
    name: Optional[str] = None
    # Older servers return the block list directly under "memory"
    memory: Union[AgentMemory, List[MemoryBlock], None] = None

    def memory_blocks(self) -> List[MemoryBlock]:
        if self.memory is None:
            return []
        if isinstance(self.memory, list):
            return self.memory
        return self.memory.blocks


class MemoryDocument(BaseModel):
    """
    Core memory fetched fresh for every conversation turn.

    Attributes:
        persona: Instructions describing the companion's personality
        human: Patient profile (name, age, diagnosis, ...)
        patient_context: Current situational / care-routine context
    """
    persona: str = ""
    human: str = ""
    patient_context: str = ""

    @classmethod
    def from_blocks(cls, blocks: List[MemoryBlock]) -> "MemoryDocument":
        values = {label: "" for label in CORE_MEMORY_LABELS}
        for block in blocks:
            if block.label in values:
                values[block.label] = block.value or ""
        return cls(**values)


class ArchivalPassage(BaseModel):
    """A stored conversation exchange returned by archival search or insert."""
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    text: str = ""
    score: Optional[float] = None
    timestamp: Optional[datetime] = None

    @classmethod
    def from_payload(cls, payload: dict) -> "ArchivalPassage":
        # Search results carry the text as "content" on newer servers
        data = dict(payload)
        if not data.get("text") and data.get("content"):
            data["text"] = data["content"]
        return cls.model_validate(data)


class ArchivalSearchResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    results: List[dict] = Field(default_factory=list)
