"""
FastAPI Application Entry Point.

This module creates and configures the FastAPI application instance.
It handles:
1. Application initialization
2. Router registration
3. Middleware configuration (audit, security headers, CORS)
4. Exception handlers (uniform error body)
5. Startup/shutdown events

Run with: uvicorn companion.api.main:app --reload
"""
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from companion import __version__
from companion.api.dependencies import close_clients
from companion.api.routes import (
    audio_router,
    conversation_router,
    conversations_router,
    health_router,
    livekit_router,
    onboarding_router,
    patients_router,
)
from companion.core.audit import AuditMiddleware, SecurityHeadersMiddleware
from companion.core.config import get_settings
from companion.core.exceptions import CompanionException, RateLimitExceeded
from companion.core.logging_config import get_logger, setup_logging
from companion.database.connection import reset_database
from companion.database.init_db import init_tables


# Initialize logging before anything else
settings = get_settings()
setup_logging(settings.log_level, settings.log_dir)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    - Startup: create missing tables (if enabled)
    - Shutdown: close HTTP clients and database connections
    """
    logger.info(f"Starting {settings.app_name} in {settings.app_env} mode")
    logger.info(f"LLM Model: {settings.llm_model}")
    logger.info(f"Memory service: {settings.letta_base_url}")
    logger.info(f"Rate Limit: {settings.rate_limit_per_minute} req/min")
    logger.info(f"Anonymous access: {settings.allow_anonymous}")

    if settings.auto_create_tables:
        init_tables()

    yield  # Application runs here

    logger.info(f"Shutting down {settings.app_name}")
    close_clients()
    reset_database()


app = FastAPI(
    title="Memory Companion API",
    description="""
    Conversational companion for people living with dementia.

    ## Features

    - **Conversation**: Replies grounded in the patient's memory profile and past exchanges
    - **Caregiver access**: Caregivers talk on behalf of, and review, linked patients
    - **Care records**: Medications and sleep logs
    - **Insights**: Behavioral analysis of recent conversations
    - **Voice**: Speech synthesis, transcription and LiveKit room tokens
    """,
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


# ============================================================
# Middleware Configuration (Order matters!)
# ============================================================

app.add_middleware(SecurityHeadersMiddleware)

if settings.enable_audit_logging:
    app.add_middleware(AuditMiddleware)
    logger.info("Audit logging middleware enabled")

if settings.is_development():
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    logger.warning("CORS configured for development (all origins allowed)")


# ============================================================
# Exception Handlers
# ============================================================

def _error_body(error: str, message: str, details=None) -> dict:
    return {
        "error": error,
        "message": message,
        "details": details,
        "timestamp": datetime.utcnow().isoformat(),
    }


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """Handle rate limit exceeded errors."""
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(**exc.to_dict()),
        headers={"Retry-After": str(exc.retry_after)},
    )


@app.exception_handler(CompanionException)
async def companion_exception_handler(request: Request, exc: CompanionException):
    """
    Handle all application exceptions.

    Server-side failures (5xx) are logged with their details; the details
    reach the client only in development.
    """
    body = exc.to_dict()
    if exc.status_code >= 500:
        logger.error(f"{exc.error_code} on {request.method} {request.url.path}: {exc.message} ({exc.details})")
        if not settings.is_development():
            body["details"] = None

    return JSONResponse(status_code=exc.status_code, content=_error_body(**body))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed requests are 400s, with the first problem in the message."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")

    return JSONResponse(
        status_code=400,
        content=_error_body(
            "validation_error",
            f"Validation error: {location} - {message}" if location else f"Validation error: {message}",
            f"{len(errors)} error(s)",
        ),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body("http_error", str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Handle uncaught exceptions globally.

    Detailed error information is only included in development mode.
    """
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content=_error_body(
            "internal_error",
            "An unexpected error occurred",
            str(exc) if settings.is_development() else None,
        ),
    )


# ============================================================
# Routers
# ============================================================

app.include_router(health_router)
app.include_router(conversation_router)
app.include_router(conversations_router)
app.include_router(onboarding_router)
app.include_router(patients_router)
app.include_router(audio_router)
app.include_router(livekit_router)


@app.get("/", include_in_schema=False)
def root():
    return {
        "message": "Memory Companion API",
        "version": __version__,
        "documentation": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "companion.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development(),
    )
