import json

import httpx
import pytest

from companion.core.exceptions import UnexpectedResponseShape, UpstreamServiceError
from companion.memory.agent_client import MemoryAgentClient, format_exchange
from companion.memory.schemas import MemoryBlock


def _client(handler) -> MemoryAgentClient:
    return MemoryAgentClient(
        base_url="https://memory.test",
        api_key="letta-key",
        timeout_seconds=5,
        transport=httpx.MockTransport(handler),
    )


def test_core_memory_reads_named_blocks_and_defaults_missing_ones():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(200, json={
            "id": "agent_123",
            "memory": {"blocks": [
                {"label": "persona", "value": "Be kind."},
                {"label": "human", "value": "Name: Margaret"},
                {"label": "unrelated", "value": "ignored"},
            ]},
        })

    memory = _client(handler).get_core_memory("agent_123")

    assert seen == {"path": "/v1/agents/agent_123", "auth": "Bearer letta-key"}
    assert memory.persona == "Be kind."
    assert memory.human == "Name: Margaret"
    assert memory.patient_context == ""


def test_core_memory_accepts_block_list_directly_under_memory():
    def handler(request):
        return httpx.Response(200, json={"id": "a", "memory": [{"label": "patient_context", "value": "At home"}]})

    assert _client(handler).get_core_memory("a").patient_context == "At home"


def test_error_status_becomes_upstream_error():
    client = _client(lambda request: httpx.Response(502, text="bad gateway"))

    with pytest.raises(UpstreamServiceError) as exc_info:
        client.get_core_memory("agent_123")

    assert "status=502" in exc_info.value.details


def test_transport_failure_becomes_upstream_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamServiceError):
        _client(handler).get_core_memory("agent_123")


def test_unexpected_agent_payload_is_reported():
    client = _client(lambda request: httpx.Response(200, json={"name": "no id here"}))

    with pytest.raises(UnexpectedResponseShape):
        client.get_core_memory("agent_123")


def test_non_json_payload_is_reported():
    client = _client(lambda request: httpx.Response(200, text="<html>"))

    with pytest.raises(UnexpectedResponseShape):
        client.get_core_memory("agent_123")


def test_archival_search_sends_query_and_limits_results():
    seen = {}

    def handler(request):
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"results": [
            {"id": "p1", "content": "User: hi\nAssistant: hello"},
            {"id": "p2", "text": "two"},
            {"id": "p3", "text": "three"},
            {"id": "p4", "text": "four"},
        ]})

    passages = _client(handler).search_archival("agent_123", "hello", top_k=3)

    assert seen["params"] == {"query": "hello", "top_k": "3"}
    assert [p.id for p in passages] == ["p1", "p2", "p3"]
    assert passages[0].text == "User: hi\nAssistant: hello"


def test_archival_search_accepts_plain_list():
    client = _client(lambda request: httpx.Response(200, json=[{"text": "one"}]))

    assert [p.text for p in client.search_archival("agent_123", "q")] == ["one"]


def test_archival_insert_posts_exchange_text():
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=[{"id": "passage-1", "text": seen["body"]["text"]}])

    passage = _client(handler).insert_archival("agent_123", "What day is it?", "Wednesday.")

    assert seen["method"] == "POST"
    assert seen["path"] == "/v1/agents/agent_123/archival-memory"
    assert seen["body"] == {"text": format_exchange("What day is it?", "Wednesday.")}
    assert passage.id == "passage-1"


def test_create_agent_sends_memory_blocks():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json={"id": "agent-new", "name": seen["body"]["name"]})

    agent = _client(handler).create_agent(
        "patient-1", [MemoryBlock(label="human", value="Name: Margaret")]
    )

    assert seen["path"] == "/v1/agents/"
    assert seen["body"]["memory_blocks"] == [{"label": "human", "value": "Name: Margaret"}]
    assert agent.id == "agent-new"
