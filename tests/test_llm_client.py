from types import SimpleNamespace

import httpx
import pytest
from groq import APIConnectionError

from companion.core.exceptions import ServiceNotConfiguredError, UnexpectedResponseShape
from companion.llm.client import LLMClient, LLMError, parse_insights


class StubCompletions:
    def __init__(self, content=None, error=None, choices=None):
        self.content = content
        self.error = error
        self.choices = choices
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        if self.choices is not None:
            return SimpleNamespace(choices=self.choices)
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))])


def _client(completions: StubCompletions) -> LLMClient:
    groq = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return LLMClient(groq_client=groq)


def test_generate_response_sends_system_and_user_messages(database):
    completions = StubCompletions(content="Today is Wednesday.")

    text = _client(completions).generate_response("SYSTEM", "What day is it today?")

    assert text == "Today is Wednesday."
    call = completions.calls[0]
    assert call["model"] == "llama-3.3-70b-versatile"
    assert call["max_tokens"] == 1024
    assert call["messages"] == [
        {"role": "system", "content": "SYSTEM"},
        {"role": "user", "content": "What day is it today?"},
    ]


def test_empty_completion_is_unexpected_shape(database):
    with pytest.raises(UnexpectedResponseShape):
        _client(StubCompletions(choices=[])).generate_response("S", "U")
    with pytest.raises(UnexpectedResponseShape):
        _client(StubCompletions(content="  ")).generate_response("S", "U")


def test_api_error_becomes_llm_error(database):
    error = APIConnectionError(request=httpx.Request("POST", "https://api.groq.com/openai/v1/chat/completions"))
    completions = StubCompletions(error=error)

    with pytest.raises(LLMError):
        _client(completions).generate_response("S", "U")

    assert len(completions.calls) == 1


def test_missing_api_key_is_not_configured(database):
    with pytest.raises(ServiceNotConfiguredError):
        LLMClient().generate_response("S", "U")


def test_parse_insights_accepts_fenced_json_and_normalizes_mood():
    text = '```json\n{"mood": "Cheerful", "streakDays": 4, "concerns": ["sleep"], "extra": 1}\n```'

    insights = parse_insights(text)

    assert insights.mood == "unknown"
    assert insights.streakDays == 4
    assert insights.concerns == ["sleep"]


def test_parse_insights_rejects_prose():
    with pytest.raises(UnexpectedResponseShape):
        parse_insights("The patient seems fine.")
