"""
Rate Limiter - Control request frequency per caller.

Simple in-memory sliding window used on the endpoints that spend money on
external services (LLM generation, speech synthesis and transcription).

For multiple instances this would need a shared store.
"""
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple
import threading

from companion.core.logging_config import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """
    Simple sliding window rate limiter.

    Tracks requests per identifier within a one-minute window.

    Example:
        >>> limiter = RateLimiter(requests_per_minute=30)
        >>> limiter.is_allowed("user_123")  # (True, 29)
    """

    def __init__(
        self,
        requests_per_minute: int = 30,
        cleanup_interval_minutes: int = 5
    ):
        """
        Initialize the rate limiter.

        Args:
            requests_per_minute: Maximum requests allowed per minute
            cleanup_interval_minutes: How often to clean old entries
        """
        self.limit = requests_per_minute
        self.window = timedelta(minutes=1)
        self.cleanup_interval = timedelta(minutes=cleanup_interval_minutes)

        self._requests: Dict[str, List[datetime]] = {}
        self._lock = threading.RLock()
        self._last_cleanup = datetime.utcnow()

        logger.info(f"RateLimiter initialized: {requests_per_minute} requests/minute")

    def is_allowed(self, identifier: str) -> Tuple[bool, int]:
        """
        Check if a request is allowed for the given identifier.

        Args:
            identifier: Caller id

        Returns:
            Tuple of (is_allowed, remaining_requests)
        """
        with self._lock:
            self._maybe_cleanup()

            now = datetime.utcnow()
            cutoff = now - self.window

            recent = [t for t in self._requests.get(identifier, []) if t > cutoff]
            self._requests[identifier] = recent

            if len(recent) >= self.limit:
                logger.warning(f"Rate limit exceeded for: {identifier[:8]}...")
                return False, 0

            recent.append(now)

            return True, self.limit - len(recent)

    def get_reset_time(self, identifier: str) -> datetime:
        """
        Get when the rate limit resets for an identifier.

        Returns:
            Datetime when oldest request in the window expires
        """
        with self._lock:
            if not self._requests.get(identifier):
                return datetime.utcnow()

            oldest = min(self._requests[identifier])
            return oldest + self.window

    def _maybe_cleanup(self) -> None:
        """Remove old entries periodically."""
        now = datetime.utcnow()

        if now - self._last_cleanup < self.cleanup_interval:
            return

        cutoff = now - self.window

        for identifier in list(self._requests.keys()):
            self._requests[identifier] = [
                t for t in self._requests[identifier] if t > cutoff
            ]
            if not self._requests[identifier]:
                del self._requests[identifier]

        self._last_cleanup = now
        logger.debug(f"Rate limiter cleanup: {len(self._requests)} active callers")


_rate_limiter: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    """Get or create the global rate limiter."""
    global _rate_limiter
    if _rate_limiter is None:
        from companion.core.config import get_settings
        settings = get_settings()
        _rate_limiter = RateLimiter(requests_per_minute=settings.rate_limit_per_minute)
    return _rate_limiter


def reset_rate_limiter() -> None:
    """Drop the global limiter (used by tests)."""
    global _rate_limiter
    _rate_limiter = None
