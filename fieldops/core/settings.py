from __future__ import annotations

from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Application-level settings for the FastAPI service.

    This is separate from fieldops.db.config.Settings, which focuses on the database layer.
    """

    # FastAPI metadata
    APP_NAME: str = Field(default="Field Operations API")
    APP_DESCRIPTION: str = Field(
        default=(
            "Backend API for fire-safety field operations. Records agent site visits, "
            "provisions lead customers and captures extinguisher inventory."
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
        description="If true, seed a demo agent after migrations.",
    )

    # Tokens are issued elsewhere; this service only verifies them.
    JWT_SECRET_KEY: str = Field(default="change-me", description="HMAC key for bearer tokens")
    JWT_ALGORITHM: str = Field(default="HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=60 * 24)

    # Artifacts
    UPLOADS_DIR: str = Field(
        default="uploads", description="Root directory of the blob store for generated artifacts."
    )
    UPLOADS_URL_PREFIX: str = Field(default="/uploads", description="Public path the blob store is served from.")
    PUBLIC_APP_URL: str = Field(
        default="http://localhost:3000",
        description="Base URL embedded in customer QR codes.",
    )

    # Visit workflow
    LEAD_EMAIL_DOMAIN: str = Field(
        default="leads.fieldops.invalid",
        description="Domain used for generated fallback e-mails of leads without one.",
    )
    VISIT_INVENTORY_ATOMIC: bool = Field(
        default=False,
        description=(
            "If true, the visit and its inventory batch commit together and a malformed "
            "inventory payload fails the request. Default keeps the visit."
        ),
    )
    VALIDATE_CUSTOMER_ID: bool = Field(
        default=False,
        description="If true, an existing customer id is looked up before the visit is recorded.",
    )

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Root log level name, e.g. DEBUG or WARNING.")

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
            parts = [p.strip() for p in v.split(",") if p.strip()]
            return parts or ["*"]
        if isinstance(v, list):
            return v or ["*"]
        return ["*"]


# PUBLIC_INTERFACE
def get_app_settings() -> AppSettings:
    """
    Return a new AppSettings instance populated from environment variables.

    A fresh instance is built on every call so tests can change the environment
    between requests.
    """
    return AppSettings()
