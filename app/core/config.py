"""
app/core/config.py

Purpose: Application configuration

- Loads environment variables
- Centralizes config values (store backend, provider keys, OAuth, policy)
- Validates configuration on startup
- Environment-specific settings
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, Literal


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Validates all required configs on startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # Storage
    STORE_BACKEND: Literal["memory", "mongo"] = Field(
        default="memory",
        description="Key/value store backend"
    )
    MONGODB_URL: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI"
    )
    MONGODB_DB_NAME: str = Field(
        default="assistant",
        description="MongoDB database name"
    )

    # WaSender (outbound messaging)
    WASENDER_API_KEY: Optional[str] = Field(
        default=None,
        description="WaSender API key used as bearer token"
    )
    WASENDER_BASE_URL: str = Field(
        default="https://wasenderapi.com/api",
        description="WaSender API base URL"
    )

    # Inbound webhook
    VERIFY_TOKEN: Optional[str] = Field(
        default=None,
        description="Token expected by the GET verification handshake"
    )
    WEBHOOK_SECRET: Optional[str] = Field(
        default=None,
        description="HMAC-SHA256 secret for inbound webhook signatures"
    )
    WEBHOOK_SIGNATURE_REQUIRED: bool = Field(
        default=True,
        description="Reject unsigned or badly signed webhook calls"
    )
    WEBHOOK_SIGNATURE_HEADER: str = Field(
        default="X-Webhook-Signature",
        description="Header carrying the hex HMAC digest"
    )

    # Delivery policy
    SEND_MAX_ATTEMPTS: int = Field(default=3, description="Attempts per outbound message")
    SEND_BASE_DELAY_SECONDS: float = Field(default=1.0, description="Backoff base delay")
    SEND_TIMEOUT_SECONDS: float = Field(default=10.0, description="Per-attempt request timeout")
    SEND_DEFAULT_RETRY_AFTER_SECONDS: float = Field(
        default=60.0,
        description="Wait used on 429 when the provider does not say"
    )

    # Per-user send rate limit
    SEND_MIN_INTERVAL_SECONDS: float = Field(
        default=65.0,
        description="Minimum seconds between two replies to the same user"
    )

    # User defaults
    DEFAULT_TIMEZONE: str = Field(default="Africa/Lagos", description="Default user timezone")
    DEFAULT_CALENDAR_ID: str = Field(default="primary", description="Default calendar id")

    # Google OAuth
    GOOGLE_CLIENT_ID: Optional[str] = None
    GOOGLE_CLIENT_SECRET: Optional[str] = None
    GOOGLE_REDIRECT_URI: Optional[str] = None

    # Application
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    API_PREFIX: str = Field(
        default="",
        description="API route prefix"
    )
    CORS_ORIGINS: list = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    @field_validator("SEND_MAX_ATTEMPTS")
    @classmethod
    def validate_attempts(cls, v):
        """At least one attempt is always made."""
        if v < 1:
            raise ValueError("SEND_MAX_ATTEMPTS must be at least 1")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        v = v.upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown LOG_LEVEL: {v}")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"

    @property
    def oauth_configured(self) -> bool:
        """Check if Google OAuth credentials are present."""
        return bool(
            self.GOOGLE_CLIENT_ID
            and self.GOOGLE_CLIENT_SECRET
            and self.GOOGLE_REDIRECT_URI
        )


# Global settings instance
settings = Settings()


def validate_settings(config: Optional[Settings] = None):
    """
    Validates critical settings on application startup.
    Raises ValueError if any required setting is missing or invalid.
    """
    config = config or settings
    errors = []

    if config.STORE_BACKEND == "mongo" and not config.MONGODB_URL:
        errors.append("MONGODB_URL is required for the mongo store backend")

    # Production-specific validations
    if config.is_production:
        if not config.WASENDER_API_KEY:
            errors.append("WASENDER_API_KEY is required in production")
        if not config.VERIFY_TOKEN:
            errors.append("VERIFY_TOKEN is required in production")
        if config.WEBHOOK_SIGNATURE_REQUIRED and not config.WEBHOOK_SECRET:
            errors.append("WEBHOOK_SECRET is required when signatures are enforced")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
