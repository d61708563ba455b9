"""
LiveKit access tokens for real-time voice rooms.
"""
from datetime import timedelta
from typing import Dict, Optional

from livekit import api

from companion.core.config import get_settings
from companion.core.exceptions import ServiceNotConfiguredError
from companion.core.logging_config import LoggerMixin

TOKEN_TTL = timedelta(hours=24)


class LiveKitTokenIssuer(LoggerMixin):
    """Signs room-join tokens with the server's LiveKit credentials."""

    def __init__(
        self,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
    ):
        settings = get_settings()
        self.url = url or settings.livekit_url
        self.api_key = api_key or settings.livekit_api_key
        self.api_secret = api_secret or settings.livekit_api_secret

    @property
    def configured(self) -> bool:
        return bool(self.url and self.api_key and self.api_secret)

    def issue(self, identity: str, room_name: str, display_name: Optional[str] = None) -> Dict[str, str]:
        """
        Create a token letting ``identity`` join ``room_name``.

        The grant allows joining, publishing audio/data and subscribing.
        """
        if not self.configured:
            raise ServiceNotConfiguredError("LiveKit")

        token = (
            api.AccessToken(self.api_key, self.api_secret)
            .with_identity(identity)
            .with_name(display_name or identity)
            .with_ttl(TOKEN_TTL)
            .with_grants(
                api.VideoGrants(
                    room=room_name,
                    room_join=True,
                    can_publish=True,
                    can_publish_data=True,
                    can_subscribe=True,
                )
            )
            .to_jwt()
        )

        self.logger.info(f"Issued LiveKit token for room '{room_name}'")
        return {"token": token, "url": self.url, "wsUrl": self.url}
