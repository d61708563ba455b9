import os
import tempfile
from typing import Callable, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

# The app reads its settings at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["APP_ENV"] = "test"
os.environ["AUTO_CREATE_TABLES"] = "true"
os.environ["ALLOW_ANONYMOUS"] = "false"
os.environ["ENABLE_AUDIT_LOGGING"] = "true"
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="companion-test-logs-"))
for _key in ("GROQ_API_KEY", "LETTA_API_KEY", "DEEPGRAM_API_KEY", "LIVEKIT_URL", "LIVEKIT_API_KEY", "LIVEKIT_API_SECRET"):
    os.environ[_key] = ""

from companion.api import dependencies  # noqa: E402
from companion.api.main import app  # noqa: E402
from companion.core.config import get_settings  # noqa: E402
from companion.core.exceptions import UpstreamServiceError  # noqa: E402
from companion.core.rate_limiter import reset_rate_limiter  # noqa: E402
from companion.database import init_tables  # noqa: E402
from companion.database.connection import get_database, reset_database  # noqa: E402
from companion.database.models import Caregiver, CaregiverPatient, Patient  # noqa: E402
from companion.llm.client import LLMError  # noqa: E402
from companion.memory.agent_client import SERVICE_NAME as MEMORY_SERVICE  # noqa: E402
from companion.memory.schemas import AgentState, ArchivalPassage, MemoryDocument  # noqa: E402
from companion.models.insights import BehavioralInsights  # noqa: E402


class FakeMemoryAgentClient:
    """In-process stand-in for the memory agent service."""

    def __init__(self):
        self.core_memory = MemoryDocument(
            persona="You are a warm companion for Margaret.",
            human="Name: Margaret\nAge: 78",
            patient_context="Current routine focus: Daily check-ins",
        )
        self.passages: List[ArchivalPassage] = []
        self.fail_core_memory = False
        self.fail_search = False
        self.fail_insert = False
        self.fail_create_agent = False
        self.calls: List[tuple] = []
        self.inserted: List[tuple] = []
        self.created_agents: List[tuple] = []

    def get_core_memory(self, agent_id: str) -> MemoryDocument:
        self.calls.append(("get_core_memory", agent_id))
        if self.fail_core_memory:
            raise UpstreamServiceError(f"{MEMORY_SERVICE} request failed", service=MEMORY_SERVICE)
        return self.core_memory

    def search_archival(self, agent_id: str, query: str, top_k: Optional[int] = 3) -> List[ArchivalPassage]:
        self.calls.append(("search_archival", agent_id, query, top_k))
        if self.fail_search:
            raise UpstreamServiceError(f"{MEMORY_SERVICE} timed out", service=MEMORY_SERVICE)
        return self.passages[:top_k]

    def insert_archival(self, agent_id: str, user_message: str, assistant_response: str):
        self.calls.append(("insert_archival", agent_id))
        if self.fail_insert:
            raise UpstreamServiceError(f"{MEMORY_SERVICE} request failed", service=MEMORY_SERVICE)
        self.inserted.append((agent_id, user_message, assistant_response))
        return ArchivalPassage(id=f"passage-{len(self.inserted)}", text=user_message)

    def create_agent(self, name, memory_blocks, **kwargs) -> AgentState:
        self.calls.append(("create_agent", name))
        if self.fail_create_agent:
            raise UpstreamServiceError(f"{MEMORY_SERVICE} request failed", service=MEMORY_SERVICE)
        self.created_agents.append((name, memory_blocks))
        return AgentState(id=f"agent-{len(self.created_agents)}", name=name)

    def close(self) -> None:
        pass


class FakeLLMClient:
    """In-process stand-in for the Groq client."""

    def __init__(self):
        self.reply = "Today is Wednesday."
        self.fail = False
        self.prompts: List[tuple] = []
        self.insights = BehavioralInsights(
            mood="positive",
            streakDays=3,
            concerns=["Asked about the date twice"],
            positiveMoments=["Talked happily about the garden"],
            memoryTopicsToReinforce=["Daughter's name is Anne"],
            frequentQuestions=[{"question": "What day is it?", "count": 2}],
        )
        self.fail_insights = False
        self.transcripts: List[str] = []

    def generate_response(self, system_prompt: str, user_message: str) -> str:
        self.prompts.append((system_prompt, user_message))
        if self.fail:
            raise LLMError(details="model overloaded")
        return self.reply

    def analyze_conversation_history(self, transcript: str, patient_name: str, **kwargs) -> BehavioralInsights:
        self.transcripts.append(transcript)
        if self.fail_insights:
            raise LLMError(details="model overloaded")
        return self.insights


@pytest.fixture
def database(monkeypatch):
    get_settings.cache_clear()
    reset_database()
    reset_rate_limiter()
    db = get_database()
    init_tables(db)
    yield db
    reset_database()
    get_settings.cache_clear()


@pytest.fixture
def session(database):
    db_session = database.new_session()
    yield db_session
    db_session.close()


@pytest.fixture
def memory_client() -> FakeMemoryAgentClient:
    return FakeMemoryAgentClient()


@pytest.fixture
def llm_client() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def client(database, memory_client, llm_client):
    app.dependency_overrides[dependencies.get_memory_client] = lambda: memory_client
    app.dependency_overrides[dependencies.get_llm_client] = lambda: llm_client
    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> Callable[[str], Dict[str, str]]:
    def _make(user_id: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {user_id}"}

    return _make


@pytest.fixture
def make_patient(session) -> Callable[..., Patient]:
    def _make(auth_user_id: str = "user_patient_1", agent_id: Optional[str] = "agent-123", **fields) -> Patient:
        patient = Patient(
            auth_user_id=auth_user_id,
            name=fields.pop("name", "Margaret"),
            age=fields.pop("age", 78),
            agent_id=agent_id,
            **fields,
        )
        session.add(patient)
        session.commit()
        return patient

    return _make


@pytest.fixture
def make_caregiver(session) -> Callable[..., Caregiver]:
    def _make(auth_user_id: str = "user_caregiver_1", patients: Optional[List[Patient]] = None) -> Caregiver:
        caregiver = Caregiver(auth_user_id=auth_user_id, name="Anne", email="anne@example.com")
        session.add(caregiver)
        session.commit()
        for patient in patients or []:
            session.add(CaregiverPatient(caregiver_id=caregiver.id, patient_id=patient.id))
        session.commit()
        return caregiver

    return _make
