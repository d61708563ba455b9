"""
Memory Package - Long-term memory held by the external memory agent service.

Nothing here is stored locally: the core memory document is fetched fresh on
every conversation turn and archival passages are only ever searched, never
read back directly.
"""
from companion.memory.agent_client import (
    ARCHIVAL_SEARCH_TOP_K,
    MemoryAgentClient,
    format_exchange,
)
from companion.memory.schemas import ArchivalPassage, MemoryBlock, MemoryDocument

__all__ = [
    "ARCHIVAL_SEARCH_TOP_K",
    "MemoryAgentClient",
    "format_exchange",
    "ArchivalPassage",
    "MemoryBlock",
    "MemoryDocument",
]
