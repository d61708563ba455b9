"""
Voice integrations: Deepgram speech and LiveKit rooms.
"""
from companion.voice.deepgram import DeepgramClient
from companion.voice.livekit_tokens import LiveKitTokenIssuer

__all__ = ["DeepgramClient", "LiveKitTokenIssuer"]
