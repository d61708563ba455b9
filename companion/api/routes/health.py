"""
Health Check Routes - System health and monitoring endpoints.

These endpoints are used for:
1. Load balancer health checks
2. Container liveness/readiness probes
"""
from fastapi import APIRouter, Response, status

from companion import __version__
from companion.core.logging_config import get_logger
from companion.database.connection import get_database
from companion.models.common import HealthResponse

logger = get_logger(__name__)

router = APIRouter(
    prefix="/health",
    tags=["Health"],
)


@router.get(
    "",
    response_model=HealthResponse,
    response_model_exclude_none=True,
    summary="Health check endpoint",
)
def health_check() -> HealthResponse:
    """
    Perform a basic health check.

    Verifies only that the API is running; dependencies are not checked.
    """
    logger.debug("Health check requested")
    return HealthResponse(status="healthy", version=__version__)


@router.get(
    "/ready",
    response_model=HealthResponse,
    summary="Readiness check endpoint",
    description="Returns 503 while the database is unreachable.",
)
def readiness_check(response: Response) -> HealthResponse:
    logger.debug("Readiness check requested")

    if not get_database().check_connection():
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(status="not_ready", version=__version__, database="unreachable")

    return HealthResponse(status="ready", version=__version__, database="ok")
