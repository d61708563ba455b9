"""
Custom Exceptions - Application-specific error classes.

Every error the API reports maps onto one of these:
- validation errors (400)
- authentication / authorization errors (401 / 403)
- not-found errors (404)
- upstream dependency errors (500, generic message, detail in the server log)
"""
from typing import Optional


class CompanionException(Exception):
    """
    Base exception for all companion errors.

    Subclass this for specific error types.
    """
    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        """Convert to error response dict."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details
        }


class ValidationError(CompanionException):
    """Raised when input validation fails."""
    status_code = 400
    error_code = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, details=f"field={field}" if field else None)
        self.field = field


class AuthenticationError(CompanionException):
    """Raised when a request carries no usable caller identity."""
    status_code = 401
    error_code = "unauthorized"

    def __init__(self, message: str = "Unauthorized - must be logged in"):
        super().__init__(message)


class AccessDeniedError(CompanionException):
    """Raised when the caller may not act on the requested resource."""
    status_code = 403
    error_code = "forbidden"

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class NotFoundError(CompanionException):
    """Raised when a patient, caregiver or conversation does not exist."""
    status_code = 404
    error_code = "not_found"

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message, details)


class ConflictError(CompanionException):
    """Raised when a record already exists (e.g. a second onboarding)."""
    status_code = 409
    error_code = "conflict"

    def __init__(self, message: str):
        super().__init__(message)


class RateLimitExceeded(CompanionException):
    """Raised when a caller exceeds the rate limit."""
    status_code = 429
    error_code = "rate_limit_exceeded"

    def __init__(self, retry_after: int = 60):
        super().__init__(
            message=f"Rate limit exceeded. Please wait {retry_after} seconds.",
            details=f"retry_after={retry_after}"
        )
        self.retry_after = retry_after


class AgentNotConfiguredError(CompanionException):
    """Raised when a patient has no memory agent attached."""
    status_code = 500
    error_code = "agent_not_configured"

    def __init__(self, patient_id: str):
        super().__init__(
            message="Patient does not have a memory agent configured",
            details=f"patient_id={patient_id}"
        )


class ServiceNotConfiguredError(CompanionException):
    """Raised when an external service is used without credentials."""
    status_code = 500
    error_code = "service_not_configured"

    def __init__(self, service: str):
        super().__init__(message=f"{service} service not configured")
        self.service = service


class UpstreamServiceError(CompanionException):
    """Raised when the database, memory agent or LLM call fails."""
    status_code = 500
    error_code = "upstream_error"

    def __init__(self, message: str, service: str = "upstream", details: Optional[str] = None):
        super().__init__(message, details)
        self.service = service


class UnexpectedResponseShape(UpstreamServiceError):
    """Raised when an external service answers with a payload we cannot read."""
    error_code = "unexpected_upstream_response"

    def __init__(self, service: str, details: Optional[str] = None):
        super().__init__(
            message=f"{service} returned an unexpected response",
            service=service,
            details=details
        )
