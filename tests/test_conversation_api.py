from datetime import timedelta

import pytest

from companion.database.models import Conversation, Message, MessageRole, utc_now
from companion.memory.schemas import ArchivalPassage


def _count(session, model) -> int:
    session.expire_all()
    return session.query(model).count()


def _messages(session, conversation_id):
    session.expire_all()
    return (
        session.query(Message)
        .filter(Message.conversation_id == conversation_id)
        .order_by(Message.timestamp, Message.id)
        .all()
    )


def test_first_message_creates_thread_with_user_and_assistant_messages(
    client, session, auth_headers, make_patient, memory_client, llm_client
):
    patient = make_patient(agent_id="agent_123")

    response = client.post(
        "/conversation",
        headers=auth_headers("user_patient_1"),
        json={"message": "What day is it today?"},
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["response"] == "Today is Wednesday."

    session.expire_all()
    conversations = session.query(Conversation).all()
    assert len(conversations) == 1
    assert payload["conversationId"] == conversations[0].id
    assert conversations[0].patient_id == patient.id
    assert conversations[0].caregiver_id is None

    messages = _messages(session, payload["conversationId"])
    assert [(m.role, m.content) for m in messages] == [
        (MessageRole.USER, "What day is it today?"),
        (MessageRole.ASSISTANT, "Today is Wednesday."),
    ]
    assert messages[0].timestamp <= messages[1].timestamp
    assert conversations[0].last_message_at >= messages[1].timestamp

    assert ("get_core_memory", "agent_123") in memory_client.calls
    assert ("search_archival", "agent_123", "What day is it today?", 3) in memory_client.calls
    assert memory_client.inserted == [("agent_123", "What day is it today?", "Today is Wednesday.")]

    system_prompt, user_message = llm_client.prompts[0]
    assert user_message == "What day is it today?"
    assert system_prompt.startswith("You are a warm companion for Margaret.")
    assert "Recent conversation context" not in system_prompt


def test_follow_up_message_appends_to_existing_thread(client, session, auth_headers, make_patient):
    make_patient()
    headers = auth_headers("user_patient_1")

    first = client.post("/conversation", headers=headers, json={"message": "Hello"}).json()
    second = client.post(
        "/conversation",
        headers=headers,
        json={"message": "Where am I?", "conversationId": first["conversationId"]},
    )

    assert second.status_code == 200
    assert second.json()["conversationId"] == first["conversationId"]
    assert _count(session, Conversation) == 1
    assert len(_messages(session, first["conversationId"])) == 4


def test_retrieved_history_is_added_to_prompt(client, auth_headers, make_patient, memory_client, llm_client):
    make_patient()
    memory_client.passages = [
        ArchivalPassage(text="User: My daughter is Anne\nAssistant: What a lovely name."),
    ]

    response = client.post(
        "/conversation", headers=auth_headers("user_patient_1"), json={"message": "Who is Anne?"}
    )

    assert response.status_code == 200
    system_prompt, _ = llm_client.prompts[0]
    assert "Recent conversation context:\nmemory: User: My daughter is Anne" in system_prompt


@pytest.mark.parametrize("body", [{}, {"message": ""}, {"message": "   "}, {"message": None}])
def test_empty_or_missing_message_is_rejected_without_writes(client, session, auth_headers, make_patient, body):
    make_patient()

    response = client.post("/conversation", headers=auth_headers("user_patient_1"), json=body)

    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"
    assert _count(session, Conversation) == 0
    assert _count(session, Message) == 0


def test_unknown_caller_gets_404_without_writes(client, session, auth_headers, make_patient):
    make_patient()

    response = client.post(
        "/conversation", headers=auth_headers("user_nobody"), json={"message": "Hello"}
    )

    assert response.status_code == 404
    assert _count(session, Conversation) == 0
    assert _count(session, Message) == 0


def test_caregiver_without_patient_id_gets_400(client, session, auth_headers, make_patient, make_caregiver):
    patient = make_patient()
    make_caregiver(patients=[patient])

    response = client.post(
        "/conversation", headers=auth_headers("user_caregiver_1"), json={"message": "Hello"}
    )

    assert response.status_code == 400
    assert "patientId" in response.json()["message"]
    assert _count(session, Conversation) == 0


def test_caregiver_with_patient_id_writes_thread_for_that_patient(
    client, session, auth_headers, make_patient, make_caregiver
):
    patient = make_patient()
    caregiver = make_caregiver(patients=[patient])

    response = client.post(
        "/conversation",
        headers=auth_headers("user_caregiver_1"),
        json={"message": "Good morning, Mum", "patientId": patient.id},
    )

    assert response.status_code == 200
    session.expire_all()
    conversation = session.get(Conversation, response.json()["conversationId"])
    assert conversation.patient_id == patient.id
    assert conversation.caregiver_id == caregiver.id


def test_caregiver_naming_unknown_patient_gets_404(client, auth_headers, make_caregiver):
    make_caregiver()

    response = client.post(
        "/conversation",
        headers=auth_headers("user_caregiver_1"),
        json={"message": "Hello", "patientId": "no-such-patient"},
    )

    assert response.status_code == 404


def test_thread_of_another_patient_is_forbidden(client, session, auth_headers, make_patient):
    make_patient(auth_user_id="user_patient_1", agent_id="agent-1")
    make_patient(auth_user_id="user_patient_2", agent_id="agent-2", name="Walter")

    other = client.post(
        "/conversation", headers=auth_headers("user_patient_2"), json={"message": "Hi"}
    ).json()
    before = len(_messages(session, other["conversationId"]))

    response = client.post(
        "/conversation",
        headers=auth_headers("user_patient_1"),
        json={"message": "Hello", "conversationId": other["conversationId"]},
    )

    assert response.status_code == 403
    assert len(_messages(session, other["conversationId"])) == before
    assert _count(session, Conversation) == 1


def test_unknown_conversation_id_gets_404(client, auth_headers, make_patient):
    make_patient()

    response = client.post(
        "/conversation",
        headers=auth_headers("user_patient_1"),
        json={"message": "Hello", "conversationId": "missing-thread"},
    )

    assert response.status_code == 404


def test_patient_without_agent_gets_500_before_any_write(client, session, auth_headers, make_patient):
    make_patient(agent_id=None)

    response = client.post(
        "/conversation", headers=auth_headers("user_patient_1"), json={"message": "Hello"}
    )

    assert response.status_code == 500
    assert response.json()["error"] == "agent_not_configured"
    assert _count(session, Conversation) == 0


def test_memory_fetch_failure_returns_500_and_leaves_user_message(
    client, session, auth_headers, make_patient, memory_client, llm_client
):
    make_patient()
    memory_client.fail_core_memory = True

    response = client.post(
        "/conversation", headers=auth_headers("user_patient_1"), json={"message": "Hello"}
    )

    assert response.status_code == 500
    assert response.json()["error"] == "upstream_error"
    assert llm_client.prompts == []

    session.expire_all()
    messages = session.query(Message).all()
    assert [m.role for m in messages] == [MessageRole.USER]
    assert _count(session, Conversation) == 1


def test_history_search_failure_still_answers(client, session, auth_headers, make_patient, memory_client, llm_client):
    make_patient()
    memory_client.fail_search = True

    response = client.post(
        "/conversation", headers=auth_headers("user_patient_1"), json={"message": "Hello"}
    )

    assert response.status_code == 200
    assert response.json()["response"] == "Today is Wednesday."
    system_prompt, _ = llm_client.prompts[0]
    assert "Recent conversation context" not in system_prompt
    assert len(_messages(session, response.json()["conversationId"])) == 2


def test_llm_failure_returns_500_and_keeps_last_activity(
    client, session, auth_headers, make_patient, llm_client
):
    patient = make_patient()
    started = utc_now() - timedelta(hours=2)
    conversation = Conversation(patient_id=patient.id, started_at=started, last_message_at=started)
    session.add(conversation)
    session.commit()
    conversation_id = conversation.id
    llm_client.fail = True

    response = client.post(
        "/conversation",
        headers=auth_headers("user_patient_1"),
        json={"message": "Hello", "conversationId": conversation_id},
    )

    assert response.status_code == 500
    session.expire_all()
    assert session.get(Conversation, conversation_id).last_message_at == started
    assert [m.role for m in _messages(session, conversation_id)] == [MessageRole.USER]


def test_archival_insert_failure_does_not_affect_response(
    client, session, auth_headers, make_patient, memory_client
):
    make_patient()
    memory_client.fail_insert = True

    response = client.post(
        "/conversation", headers=auth_headers("user_patient_1"), json={"message": "Hello"}
    )

    assert response.status_code == 200
    assert len(_messages(session, response.json()["conversationId"])) == 2


def test_same_request_twice_creates_two_threads(client, session, auth_headers, make_patient):
    make_patient()
    headers = auth_headers("user_patient_1")

    first = client.post("/conversation", headers=headers, json={"message": "What day is it today?"})
    second = client.post("/conversation", headers=headers, json={"message": "What day is it today?"})

    assert first.status_code == second.status_code == 200
    assert first.json()["conversationId"] != second.json()["conversationId"]
    assert _count(session, Conversation) == 2
    for payload in (first.json(), second.json()):
        assert len(_messages(session, payload["conversationId"])) == 2


def test_missing_credentials_are_rejected(client, make_patient):
    make_patient()

    response = client.post("/conversation", json={"message": "Hello"})

    assert response.status_code == 401
    assert set(response.json()) == {"error", "message", "details", "timestamp"}


def test_anonymous_caller_maps_to_demo_patient_when_allowed(client, session, monkeypatch, make_patient):
    from companion.core.config import get_settings

    monkeypatch.setenv("ALLOW_ANONYMOUS", "true")
    get_settings.cache_clear()
    demo = make_patient(auth_user_id="demo_patient_global", agent_id="agent-demo")

    response = client.post("/conversation", json={"message": "Hello"})

    assert response.status_code == 200
    session.expire_all()
    assert session.get(Conversation, response.json()["conversationId"]).patient_id == demo.id


def test_rate_limit_returns_429(client, monkeypatch, auth_headers, make_patient):
    from companion.core.config import get_settings
    from companion.core.rate_limiter import reset_rate_limiter

    monkeypatch.setenv("RATE_LIMIT_PER_MINUTE", "2")
    get_settings.cache_clear()
    reset_rate_limiter()
    make_patient()
    headers = auth_headers("user_patient_1")

    for _ in range(2):
        assert client.post("/conversation", headers=headers, json={"message": "Hi"}).status_code == 200

    response = client.post("/conversation", headers=headers, json={"message": "Hi"})
    assert response.status_code == 429
    assert "Retry-After" in response.headers


def test_long_message_is_stored_and_sent_in_full(client, session, auth_headers, make_patient, llm_client):
    make_patient()
    message = "I remember the garden. " * 400

    response = client.post(
        "/conversation", headers=auth_headers("user_patient_1"), json={"message": message}
    )

    assert response.status_code == 200
    assert llm_client.prompts[0][1] == message.strip()
    stored = _messages(session, response.json()["conversationId"])[0]
    assert stored.content == message.strip()
