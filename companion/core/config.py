"""
Configuration management via environment variables.

This module loads configuration from .env file using python-dotenv.
All configuration values are accessed through the Settings class.

Provider credentials (Groq, Letta, Deepgram, LiveKit) are optional at load
time: the features that need them report a "not configured" error when they
are used without one.
"""
import os
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


# Load .env file from project root
# This must happen before accessing os.environ
env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(env_path)


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    frozen=True makes the dataclass immutable, so a settings instance can be
    shared by every request handler.

    Attributes:
        app_name: Application identifier for logging
        app_env: Environment name (development, staging, production)
        log_level: Logging verbosity (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for daily log files (None = <project>/logs)
        database_url: SQLAlchemy connection string
        auto_create_tables: Create missing tables at startup
        groq_api_key: API key for the Groq chat-completion service
        llm_model: Model used for companion responses
        llm_max_tokens: Maximum companion response length
        insights_model: Model used for behavioral insight analysis
        letta_base_url: Base URL of the memory agent service
        deepgram_api_key: API key for speech-to-text / text-to-speech
        livekit_url: WebSocket URL handed to clients joining a room
        allow_anonymous: Treat unauthenticated callers as the demo identity
        demo_patient_user_id: Auth id of the shared demo patient
        demo_caregiver_user_id: Auth id of the shared demo caregiver
    """
    # Application settings
    app_name: str
    app_env: str
    log_level: str
    log_dir: Optional[str]

    # Database settings
    database_url: str
    auto_create_tables: bool

    # LLM settings
    groq_api_key: Optional[str]
    llm_model: str
    llm_max_tokens: int
    insights_model: str
    insights_max_tokens: int
    insights_temperature: float

    # Memory agent service
    letta_base_url: str
    letta_api_key: Optional[str]
    letta_timeout_seconds: float

    # Voice services
    deepgram_api_key: Optional[str]
    livekit_url: Optional[str]
    livekit_api_key: Optional[str]
    livekit_api_secret: Optional[str]

    # Auth settings
    allow_anonymous: bool
    demo_patient_user_id: str
    demo_caregiver_user_id: str

    # Safety settings
    rate_limit_per_minute: int
    enable_audit_logging: bool

    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.app_env.lower() == "development"

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env.lower() == "production"


def _get_env(key: str, default: Optional[str] = None) -> str:
    """
    Get environment variable with optional default.

    Args:
        key: Environment variable name
        default: Default value if not set

    Returns:
        Environment variable value

    Raises:
        ValueError: If required variable is not set and no default provided
    """
    value = os.environ.get(key, default)
    if value is None:
        raise ValueError(
            f"Required environment variable '{key}' is not set. "
            f"Please check your .env file."
        )
    return value


def _get_optional_env(key: str) -> Optional[str]:
    """Get an environment variable, mapping blank values to None."""
    value = os.environ.get(key)
    if value is None or not value.strip():
        return None
    return value.strip()


def _get_bool_env(key: str, default: str) -> bool:
    return _get_env(key, default).lower() in {"1", "true", "yes"}


def normalize_database_url(database_url: str) -> str:
    """
    Fix up provider-style URLs so SQLAlchemy picks the right driver.

    Hosted Postgres/MySQL providers hand out URLs such as ``postgres://`` or
    ``mysql://...?ssl-mode=REQUIRED`` which SQLAlchemy (and pymysql) reject.
    """
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)
    if database_url.startswith("mysql://"):
        database_url = database_url.replace("mysql://", "mysql+pymysql://", 1)

    # pymysql does not understand ssl-mode
    if "ssl-mode=" in database_url:
        database_url = re.sub(r"[?&]ssl-mode=[^&]+", "", database_url)
        if "?" not in database_url and "&" in database_url:
            database_url = database_url.replace("&", "?", 1)

    return database_url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are read once; tests that change the environment call
    ``get_settings.cache_clear()`` before building the app.

    Returns:
        Settings instance with all configuration values
    """
    database_url = normalize_database_url(
        _get_env("DATABASE_URL", "sqlite:///./companion.db")
    )

    return Settings(
        # Application
        app_name=_get_env("APP_NAME", "MemoryCompanion"),
        app_env=_get_env("APP_ENV", "development"),
        log_level=_get_env("LOG_LEVEL", "INFO"),
        log_dir=_get_optional_env("LOG_DIR"),

        # Database
        database_url=database_url,
        auto_create_tables=_get_bool_env("AUTO_CREATE_TABLES", "true"),

        # LLM
        groq_api_key=_get_optional_env("GROQ_API_KEY"),
        llm_model=_get_env("LLM_MODEL", "llama-3.3-70b-versatile"),
        llm_max_tokens=int(_get_env("LLM_MAX_TOKENS", "1024")),
        insights_model=_get_env("INSIGHTS_MODEL", "moonshotai/kimi-k2-instruct"),
        insights_max_tokens=int(_get_env("INSIGHTS_MAX_TOKENS", "4000")),
        insights_temperature=float(_get_env("INSIGHTS_TEMPERATURE", "0.3")),

        # Memory agent service
        letta_base_url=_get_env("LETTA_BASE_URL", "https://api.letta.com").rstrip("/"),
        letta_api_key=_get_optional_env("LETTA_API_KEY"),
        letta_timeout_seconds=float(_get_env("LETTA_TIMEOUT_SECONDS", "30")),

        # Voice
        deepgram_api_key=_get_optional_env("DEEPGRAM_API_KEY"),
        livekit_url=_get_optional_env("LIVEKIT_URL"),
        livekit_api_key=_get_optional_env("LIVEKIT_API_KEY"),
        livekit_api_secret=_get_optional_env("LIVEKIT_API_SECRET"),

        # Auth
        allow_anonymous=_get_bool_env("ALLOW_ANONYMOUS", "false"),
        demo_patient_user_id=_get_env("DEMO_PATIENT_USER_ID", "demo_patient_global"),
        demo_caregiver_user_id=_get_env("DEMO_CAREGIVER_USER_ID", "demo_caregiver_global"),

        # Safety
        rate_limit_per_minute=int(_get_env("RATE_LIMIT_PER_MINUTE", "30")),
        enable_audit_logging=_get_bool_env("ENABLE_AUDIT_LOGGING", "true"),
    )
