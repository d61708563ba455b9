"""
API request/response models (pydantic).
"""
from companion.models.common import ErrorResponse, HealthResponse
from companion.models.conversation import (
    ConversationListResponse,
    ConversationMessagesResponse,
    ConversationRequest,
    ConversationResponse,
)
from companion.models.insights import (
    AnalyzeInsightsRequest,
    AnalyzeInsightsResponse,
    BehavioralInsights,
    InsightsResponse,
)
from companion.models.onboarding import (
    CaregiverOnboarding,
    DemoOnboarding,
    OnboardingRequest,
    OnboardingResponse,
    PatientOnboarding,
)
from companion.models.patient import DailyActivityCreate, DoseCreate, MedicationCreate, SleepLogCreate
from companion.models.voice import (
    LiveKitTokenResponse,
    SpeakRequest,
    SpeechTokenResponse,
    TranscriptionResponse,
)

__all__ = [
    "ErrorResponse",
    "HealthResponse",
    "ConversationListResponse",
    "ConversationMessagesResponse",
    "ConversationRequest",
    "ConversationResponse",
    "AnalyzeInsightsRequest",
    "AnalyzeInsightsResponse",
    "BehavioralInsights",
    "InsightsResponse",
    "CaregiverOnboarding",
    "DemoOnboarding",
    "OnboardingRequest",
    "OnboardingResponse",
    "PatientOnboarding",
    "DailyActivityCreate",
    "DoseCreate",
    "MedicationCreate",
    "SleepLogCreate",
    "LiveKitTokenResponse",
    "SpeakRequest",
    "SpeechTokenResponse",
    "TranscriptionResponse",
]
