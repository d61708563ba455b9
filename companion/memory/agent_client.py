"""
Memory Agent Client - HTTP interface to the persistent-memory agent service.

Each patient has one agent in the memory service. The companion uses it for:
- core memory (persona / patient profile / context) used as the system prompt
- archival memory: past exchanges stored as passages and found again by
  semantic search

The client holds one ``httpx.Client`` (connection pool, base URL, auth
header) and no per-request state, so a single instance is shared by all
requests.
"""
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from companion.core.config import get_settings
from companion.core.exceptions import UnexpectedResponseShape, UpstreamServiceError
from companion.core.logging_config import get_logger
from companion.memory.schemas import (
    AgentState,
    ArchivalPassage,
    ArchivalSearchResponse,
    MemoryBlock,
    MemoryDocument,
)

logger = get_logger(__name__)

SERVICE_NAME = "Memory agent service"

# Passages retrieved per conversation turn
ARCHIVAL_SEARCH_TOP_K = 3


def format_exchange(user_message: str, assistant_response: str) -> str:
    """Text of the archival passage stored for one exchange."""
    return f"User: {user_message}\nAssistant: {assistant_response}"


class MemoryAgentClient:
    """
    Client for the memory agent REST API.

    Example:
        >>> client = MemoryAgentClient()
        >>> memory = client.get_core_memory("agent-123")
        >>> memory.persona
        'You are a warm, patient, and reassuring AI companion ...'
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize the HTTP client.

        Args:
            base_url: Service root, defaults to LETTA_BASE_URL
            api_key: Bearer token, defaults to LETTA_API_KEY
            timeout_seconds: Per-request timeout, defaults to LETTA_TIMEOUT_SECONDS
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        settings = get_settings()
        base_url = (base_url or settings.letta_base_url).rstrip("/")
        api_key = api_key if api_key is not None else settings.letta_api_key
        timeout_seconds = timeout_seconds or settings.letta_timeout_seconds

        headers = {"Accept": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        self._http = httpx.Client(
            base_url=base_url,
            headers=headers,
            timeout=httpx.Timeout(timeout_seconds, connect=10.0),
            transport=transport,
        )
        logger.info(f"MemoryAgentClient initialized: {base_url}")

    def close(self) -> None:
        self._http.close()

    # ============================================================
    # Core memory
    # ============================================================

    def get_agent(self, agent_id: str) -> AgentState:
        """Fetch an agent record."""
        payload = self._request("GET", f"/v1/agents/{agent_id}")
        try:
            return AgentState.model_validate(payload)
        except PydanticValidationError as e:
            raise UnexpectedResponseShape(SERVICE_NAME, details=str(e)) from e

    def get_core_memory(self, agent_id: str) -> MemoryDocument:
        """
        Retrieve the agent's core memory document.

        Missing blocks default to empty strings.

        Raises:
            UpstreamServiceError: transport failure or error status
            UnexpectedResponseShape: payload is not an agent record
        """
        agent = self.get_agent(agent_id)
        memory = MemoryDocument.from_blocks(agent.memory_blocks())
        logger.debug(
            f"Core memory loaded: agent={agent_id}, "
            f"persona={len(memory.persona)} human={len(memory.human)} "
            f"context={len(memory.patient_context)} chars"
        )
        return memory

    def create_agent(
        self,
        name: str,
        memory_blocks: List[MemoryBlock],
        model: str = "letta/letta-free",
        embedding: str = "letta/letta-free",
    ) -> AgentState:
        """Create an agent seeded with the given core memory blocks."""
        body = {
            "name": name,
            "memory_blocks": [
                block.model_dump(exclude_none=True) for block in memory_blocks
            ],
            "model": model,
            "embedding": embedding,
        }
        payload = self._request("POST", "/v1/agents/", json=body)
        try:
            agent = AgentState.model_validate(payload)
        except PydanticValidationError as e:
            raise UnexpectedResponseShape(SERVICE_NAME, details=str(e)) from e

        logger.info(f"Created memory agent {agent.id} ({name})")
        return agent

    # ============================================================
    # Archival memory
    # ============================================================

    def search_archival(
        self,
        agent_id: str,
        query: str,
        top_k: Optional[int] = ARCHIVAL_SEARCH_TOP_K,
    ) -> List[ArchivalPassage]:
        """
        Semantic search over the agent's stored passages.

        Returns at most ``top_k`` passages, most relevant first.
        """
        params: Dict[str, Any] = {"query": query}
        if top_k:
            params["top_k"] = top_k

        payload = self._request(
            "GET", f"/v1/agents/{agent_id}/archival-memory/search", params=params
        )

        try:
            if isinstance(payload, list):
                raw_results = payload
            else:
                raw_results = ArchivalSearchResponse.model_validate(payload).results
            passages = [ArchivalPassage.from_payload(item) for item in raw_results]
        except (PydanticValidationError, TypeError) as e:
            raise UnexpectedResponseShape(SERVICE_NAME, details=str(e)) from e

        if top_k:
            passages = passages[:top_k]

        logger.info(f"Archival search for agent {agent_id}: found {len(passages)} passages")
        return passages

    def insert_archival(
        self,
        agent_id: str,
        user_message: str,
        assistant_response: str,
    ) -> Optional[ArchivalPassage]:
        """
        Store one exchange as an archival passage.

        Returns the created passage (the service answers with a list).
        """
        payload = self._request(
            "POST",
            f"/v1/agents/{agent_id}/archival-memory",
            json={"text": format_exchange(user_message, assistant_response)},
        )

        items = payload if isinstance(payload, list) else [payload]
        if not items or not isinstance(items[0], dict):
            logger.warning(f"Archival insert for agent {agent_id} returned no passage")
            return None

        try:
            passage = ArchivalPassage.from_payload(items[0])
        except PydanticValidationError as e:
            raise UnexpectedResponseShape(SERVICE_NAME, details=str(e)) from e

        logger.info(f"Archival memory stored for agent {agent_id}: passage {passage.id}")
        return passage

    # ============================================================
    # Transport
    # ============================================================

    def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = self._http.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise UpstreamServiceError(
                f"{SERVICE_NAME} timed out", service=SERVICE_NAME, details=str(e)
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamServiceError(
                f"Failed to reach {SERVICE_NAME.lower()}", service=SERVICE_NAME, details=str(e)
            ) from e

        if response.status_code >= 400:
            raise UpstreamServiceError(
                f"{SERVICE_NAME} request failed",
                service=SERVICE_NAME,
                details=f"{method} {path} status={response.status_code} body={response.text[:300]}",
            )

        if not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise UnexpectedResponseShape(SERVICE_NAME, details="response is not JSON") from e
