"""
API Routes module - Endpoint definitions.

Each file in this module defines routes for a specific domain:
- conversation.py  : The conversation pipeline
- conversations.py : Conversation history
- onboarding.py    : Patient / caregiver sign-up, demo accounts
- patients.py      : Profile, care records, monitoring, insights
- audio.py         : Speech synthesis and transcription
- livekit.py       : Voice room tokens
- health.py        : Health check endpoints
"""
from companion.api.routes.audio import router as audio_router
from companion.api.routes.conversation import router as conversation_router
from companion.api.routes.conversations import router as conversations_router
from companion.api.routes.health import router as health_router
from companion.api.routes.livekit import router as livekit_router
from companion.api.routes.onboarding import router as onboarding_router
from companion.api.routes.patients import router as patients_router

__all__ = [
    "audio_router",
    "conversation_router",
    "conversations_router",
    "health_router",
    "livekit_router",
    "onboarding_router",
    "patients_router",
]
