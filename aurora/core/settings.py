from __future__ import annotations

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Application-level settings for the FastAPI service.

    This is separate from aurora.db.config.Settings, which focuses on the database layer.
    """

    # FastAPI metadata
    APP_NAME: str = Field(default="AuroraSocial API")
    APP_DESCRIPTION: str = Field(
        default=(
            "Backend API for municipal social-assistance agencies: citizen and family "
            "registration, atendimentos, attachments, team management and reporting."
        )
    )
    APP_VERSION: str = Field(default="0.1.0")

    # CORS
    CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: ["*"],
        description="Comma-separated list or JSON array of allowed origins. Default: *",
    )
    CORS_ALLOW_CREDENTIALS: bool = Field(default=True)
    CORS_ALLOW_METHODS: List[str] = Field(default_factory=lambda: ["*"])
    CORS_ALLOW_HEADERS: List[str] = Field(default_factory=lambda: ["*"])

    # Startup behavior
    RUN_MIGRATIONS_ON_STARTUP: bool = Field(
        default=True,
        description="If true, run Alembic migrations (upgrade head) at app startup.",
    )
    AUTO_SEED: bool = Field(
        default=False,
        description="If true, seed a demo municipality after migrations.",
    )

    # Tokens and sessions
    JWT_SECRET_KEY: str = Field(default="change-me", description="Secret used to sign JWTs")
    JWT_ALGORITHM: str = Field(default="HS256")
    SESSION_MAX_AGE_DAYS: int = Field(default=30, description="Login session lifetime")
    MAGIC_LINK_EXPIRE_MINUTES: int = Field(default=24 * 60)
    INVITATION_EXPIRE_DAYS: int = Field(default=7)
    APP_BASE_URL: str = Field(
        default="http://localhost:3000",
        description="Public URL of the web client; used to build e-mail links.",
    )

    # E-mail delivery
    EMAIL_FROM: str = Field(default="noreply@aurorasocial.com")
    SMTP_HOST: Optional[str] = Field(default=None)
    SMTP_PORT: int = Field(default=587)
    SMTP_USER: Optional[str] = Field(default=None)
    SMTP_PASSWORD: Optional[str] = Field(default=None)
    SMTP_USE_TLS: bool = Field(default=True)

    # Attachments
    STORAGE_DIR: str = Field(default="./storage", description="Root directory for attachment blobs")
    MAX_UPLOAD_BYTES: int = Field(default=10 * 1024 * 1024)
    SIGNED_URL_EXPIRE_MINUTES: int = Field(default=15)

    # Reporting
    DASHBOARD_CACHE_TTL_SECONDS: int = Field(default=3600)

    LOG_LEVEL: str = Field(default="INFO")

    # Environment label
    ENVIRONMENT: Optional[str] = Field(
        default=None, description="Environment label (dev/test/prod)"
    )

    # Automatically load from .env at runtime. The orchestrator will provide these.
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        """
        Accept both JSON array format and comma-separated formats for CORS origins.
        """
        if v is None:
            return ["*"]
        if isinstance(v, str):
            # Try comma-separated
            parts = [p.strip() for p in v.split(",") if p.strip()]
            return parts or ["*"]
        if isinstance(v, list):
            return v or ["*"]
        return ["*"]


# PUBLIC_INTERFACE
def get_app_settings() -> AppSettings:
    """
    Return a new AppSettings instance populated from environment variables.

    Note:
      For simplicity we construct a new instance each time, so tests can tweak
      the environment between calls.
    """
    return AppSettings()
