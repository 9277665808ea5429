import os
import sys
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _should_load_env_file() -> str | None:
    """Determine if .env should be loaded.

    Local development reads `backend/.env` for convenience. Under pytest or
    in CI the file is ignored so tests that check for missing secrets keep
    failing fast.
    """
    if any("pytest" in str(x) for x in sys.argv if x):
        return None
    if os.environ.get("CI") in ("1", "true", "True"):
        return None
    return ".env"


class Settings(BaseSettings):
    # Environment configuration
    ENVIRONMENT: str = Field(
        default="development",
        description="Environment: 'development', 'staging', 'production' or 'test'",
    )

    DATABASE_URL: str = "sqlite:///./data/feedback.db"

    # Bearer tokens are issued by the identity provider and verified here
    JWT_SECRET: str = Field(
        ...,  # Required, no default
        description="Shared secret used to verify user access tokens",
    )
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: str | None = Field(
        default=None,
        description="Expected 'aud' claim (e.g. 'authenticated'); skipped when unset",
    )

    CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:5173"],
        description="Allowed CORS origins (comma-separated in env var)",
    )

    # Database connection pool settings
    DB_POOL_SIZE: int = Field(
        default=5,
        description="Number of persistent connections in pool",
    )
    DB_MAX_OVERFLOW: int = Field(
        default=10,
        description="Extra connections when pool exhausted",
    )
    DB_POOL_TIMEOUT: int = Field(
        default=30,
        description="Seconds to wait for connection from pool",
    )
    DB_POOL_RECYCLE: int = Field(
        default=1800,
        description="Recycle connections after N seconds (30 min default)",
    )

    # Safety: avoid creating DB schema automatically unless explicitly enabled.
    AUTO_CREATE_DB: bool = Field(
        default=False,
        description="When true (development only), call Base.metadata.create_all on startup",
    )

    SLOW_REQUEST_THRESHOLD: float = Field(
        default=1.0,
        description="Log warning for requests slower than this (seconds)",
    )

    # Invites
    INVITE_EXPIRY_DAYS: int = Field(
        default=7,
        ge=1,
        description="Days before a pending invite expires",
    )

    # Attachments
    ATTACHMENT_STORAGE_DIR: str = Field(
        default="data/uploads",
        description="Root directory of the local object storage",
    )
    ATTACHMENT_UPLOAD_BASE_URL: str = Field(
        default="http://localhost:8000/uploads",
        description="Public URL clients upload local attachments to",
    )
    ATTACHMENT_MAX_BYTES: int = Field(
        default=25 * 1024 * 1024,
        ge=1,
        description="Largest accepted attachment (25MB default)",
    )

    # Rate limits (slowapi syntax)
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_VOTE: str = "30/minute"
    RATE_LIMIT_COMMENT: str = "10/minute"
    RATE_LIMIT_PORTAL_FEEDBACK: str = "10/minute"
    RATE_LIMIT_SDK_FEEDBACK: str = "10/minute"
    RATE_LIMIT_SDK_IDENTIFY: str = "100/minute"

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: str | List[str]) -> List[str]:
        """Accept a comma-separated string as well as a JSON list."""
        if isinstance(v, str) and not v.startswith("["):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v  # type: ignore[return-value]

    @field_validator("JWT_SECRET")
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        if len(v) < 16:
            raise ValueError("JWT_SECRET must be at least 16 characters long")
        return v

    model_config = SettingsConfigDict(
        env_file=_should_load_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",  # SENTRY_DSN and friends are read elsewhere
    )

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT in ("development", "dev")


# Instantiating Settings() raises pydantic.ValidationError when JWT_SECRET is missing.
settings = Settings()  # type: ignore[call-arg]
