"""
Input Validators - Sanitization and validation utilities.

Pydantic already checks types and presence; these helpers clean up free text
that ends up in the database and in LLM prompts. Message length is not
limited.
"""
import re
from typing import Optional, Tuple

from companion.core.logging_config import get_logger

logger = get_logger(__name__)

# Control characters other than tab / newline / carriage return
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def sanitize_text(text: Optional[str], max_length: Optional[int] = None) -> str:
    """
    Sanitize user-supplied text.

    - Removes null bytes and other control characters
    - Strips leading/trailing whitespace
    - Truncates to ``max_length`` when one is given

    Newlines are kept: patients dictate multi-sentence messages.
    """
    if not text:
        return ""

    cleaned = _CONTROL_CHARS.sub("", text).strip()

    if max_length is not None and len(cleaned) > max_length:
        cleaned = cleaned[:max_length]

    return cleaned


def validate_message(message: Optional[str]) -> Tuple[bool, str, Optional[str]]:
    """
    Full validation and sanitization of a conversation message.

    Args:
        message: Raw user message

    Returns:
        Tuple of (is_valid, sanitized_message, error_message)
    """
    if not message or not message.strip():
        return False, "", "Message cannot be empty"

    sanitized = sanitize_text(message)

    if not sanitized:
        return False, "", "Message cannot be empty after sanitization"

    return True, sanitized, None


def validate_identifier(value: Optional[str], field: str) -> Tuple[bool, Optional[str]]:
    """
    Check that an id taken from a body or query string looks like one.

    Ids are opaque strings (uuid4 for rows we create), so only the charset
    and length are checked.
    """
    if value is None:
        return True, None

    if not re.fullmatch(r"[A-Za-z0-9_.:-]{1,64}", value):
        return False, f"Invalid {field} format"

    return True, None
