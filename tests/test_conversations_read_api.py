from datetime import timedelta

from companion.database.models import Conversation, Message, MessageRole, utc_now


def _thread(session, patient, minutes_ago, contents):
    base = utc_now() - timedelta(minutes=minutes_ago)
    conversation = Conversation(patient_id=patient.id, started_at=base, last_message_at=base)
    session.add(conversation)
    session.flush()
    for offset, (role, content) in enumerate(contents):
        session.add(Message(
            conversation_id=conversation.id,
            role=role,
            content=content,
            timestamp=base + timedelta(seconds=offset),
        ))
    conversation.last_message_at = base + timedelta(seconds=len(contents))
    session.commit()
    return conversation


def test_list_returns_recent_threads_with_latest_message(client, session, auth_headers, make_patient):
    patient = make_patient()
    older = _thread(session, patient, 60, [(MessageRole.USER, "Good morning"), (MessageRole.ASSISTANT, "Morning!")])
    newer = _thread(session, patient, 5, [(MessageRole.USER, "Lunch?"), (MessageRole.ASSISTANT, "Soup today.")])

    response = client.get(f"/conversations?patientId={patient.id}", headers=auth_headers("user_patient_1"))

    assert response.status_code == 200
    conversations = response.json()["conversations"]
    assert [c["id"] for c in conversations] == [newer.id, older.id]
    assert [m["content"] for m in conversations[0]["messages"]] == ["Soup today."]
    assert conversations[0]["title"] == "Untitled Conversation"


def test_list_is_capped_at_ten(client, session, auth_headers, make_patient):
    patient = make_patient()
    for minutes in range(12):
        _thread(session, patient, minutes, [(MessageRole.USER, f"message {minutes}")])

    response = client.get(f"/conversations?patientId={patient.id}", headers=auth_headers("user_patient_1"))

    assert len(response.json()["conversations"]) == 10


def test_list_requires_patient_id_and_access(client, auth_headers, make_patient, make_caregiver):
    patient = make_patient()
    make_caregiver()

    assert client.get("/conversations", headers=auth_headers("user_patient_1")).status_code == 400
    assert client.get(
        f"/conversations?patientId={patient.id}", headers=auth_headers("user_caregiver_1")
    ).status_code == 403


def test_messages_are_returned_in_timestamp_order(client, session, auth_headers, make_patient, make_caregiver):
    patient = make_patient()
    make_caregiver(patients=[patient])
    conversation = _thread(session, patient, 10, [
        (MessageRole.USER, "Where are my glasses?"),
        (MessageRole.ASSISTANT, "On the kitchen table."),
        (MessageRole.USER, "Thank you"),
    ])

    response = client.get(
        f"/conversations/{conversation.id}/messages", headers=auth_headers("user_caregiver_1")
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["conversation"]["id"] == conversation.id
    assert payload["conversation"]["messageCount"] == 3
    assert [m["content"] for m in payload["messages"]] == [
        "Where are my glasses?",
        "On the kitchen table.",
        "Thank you",
    ]


def test_messages_of_other_patient_are_forbidden(client, session, auth_headers, make_patient):
    make_patient(auth_user_id="user_patient_1", agent_id="agent-1")
    other = make_patient(auth_user_id="user_patient_2", agent_id="agent-2")
    conversation = _thread(session, other, 1, [(MessageRole.USER, "Private")])

    response = client.get(f"/conversations/{conversation.id}/messages", headers=auth_headers("user_patient_1"))

    assert response.status_code == 403


def test_unknown_thread_is_404(client, auth_headers, make_patient):
    make_patient()

    response = client.get("/conversations/missing/messages", headers=auth_headers("user_patient_1"))

    assert response.status_code == 404
