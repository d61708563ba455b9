"""
Caller identity extraction.

The hosted auth provider sits in front of this service and forwards the
authenticated user id as an opaque bearer token. This module only turns the
``Authorization`` header into a caller id; what the caller may do is decided
in ``companion.services.access``.
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import Header

from companion.core.config import get_settings
from companion.core.exceptions import AuthenticationError
from companion.core.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Caller:
    """The authenticated (or demo) identity behind a request."""
    user_id: str
    is_anonymous: bool = False


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token part of a ``Bearer`` header, or None if blank."""
    if not authorization:
        return None
    raw = authorization.strip()
    if raw.lower().startswith("bearer"):
        raw = raw[len("bearer"):]
    raw = raw.strip()
    return raw or None


def resolve_caller(authorization: Optional[str]) -> Caller:
    """
    Turn an Authorization header into a Caller.

    Missing credentials are rejected with 401 unless ALLOW_ANONYMOUS is set,
    in which case the request runs as the shared demo patient.
    """
    token = extract_bearer_token(authorization)
    if token:
        return Caller(user_id=token)

    settings = get_settings()
    if settings.allow_anonymous:
        logger.debug("Anonymous request mapped to demo identity")
        return Caller(user_id=settings.demo_patient_user_id, is_anonymous=True)

    raise AuthenticationError()


def get_current_caller(authorization: Optional[str] = Header(default=None)) -> Caller:
    """FastAPI dependency returning the caller of the current request."""
    return resolve_caller(authorization)
