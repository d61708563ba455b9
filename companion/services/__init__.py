"""
Services - the application's use cases, between the API routes and the
database / external clients.
"""
from companion.services.access import (
    Authorized,
    Denied,
    authorize_patient_access,
    require,
    resolve_conversation_identity,
)
from companion.services.conversation_service import ConversationService, ConversationTurn
from companion.services.insights_service import InsightsService
from companion.services.onboarding_service import OnboardingService
from companion.services.results import FailureKind, StepResult, run_step

__all__ = [
    "Authorized",
    "Denied",
    "authorize_patient_access",
    "require",
    "resolve_conversation_identity",
    "ConversationService",
    "ConversationTurn",
    "InsightsService",
    "OnboardingService",
    "FailureKind",
    "StepResult",
    "run_step",
]
