"""
LiveKit Route - access tokens for real-time voice rooms.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from companion.api.dependencies import get_livekit_issuer
from companion.core.auth import Caller, get_current_caller
from companion.core.exceptions import ValidationError
from companion.models.voice import LiveKitTokenResponse
from companion.voice.livekit_tokens import LiveKitTokenIssuer

router = APIRouter(prefix="/livekit", tags=["Voice"])


@router.get(
    "/token",
    response_model=LiveKitTokenResponse,
    summary="Get a LiveKit room token",
    description="Token valid for 24 hours. The caller's id is the participant identity.",
)
def livekit_token(
    roomName: Optional[str] = Query(default=None),
    userName: Optional[str] = Query(default=None),
    caller: Caller = Depends(get_current_caller),
    issuer: LiveKitTokenIssuer = Depends(get_livekit_issuer),
) -> LiveKitTokenResponse:
    if not roomName:
        raise ValidationError("roomName query parameter is required", field="roomName")

    return LiveKitTokenResponse.model_validate(
        issuer.issue(caller.user_id, roomName, display_name=userName)
    )
