"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables or a local .env file.
"""

from functools import lru_cache
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "CivicVote"
    APP_ENV: str = "development"
    DEBUG: bool = False
    SECRET_KEY: str = ""  # Required - loaded from environment

    @field_validator("SECRET_KEY")
    @classmethod
    def validate_required_secrets(cls, v: str, info: Any) -> str:
        """Validate that required secrets are set."""
        if not v:
            raise ValueError(f"{info.field_name} must be set in environment")
        return v

    # Database - PostgreSQL (DATABASE_URL overrides, e.g. sqlite+aiosqlite for local runs)
    DATABASE_URL: str | None = None
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "civicvote"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "civicvote"
    DB_CREATE_TABLES: bool = True
    DB_ECHO: bool = False
    DB_POOL_TIMEOUT_SECONDS: int = 10

    @property
    def POSTGRES_URL(self) -> str:
        """Construct PostgreSQL connection URL with SSL required."""
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}?ssl=require"
        )

    @property
    def database_url(self) -> str:
        """Get the effective SQLAlchemy URL."""
        return self.DATABASE_URL or self.POSTGRES_URL

    # Azure Communication Services (SMS + email one-time codes)
    AZURE_COMMUNICATION_CONNECTION_STRING: str | None = None
    AZURE_COMMUNICATION_SENDER_NUMBER: str | None = None
    AZURE_EMAIL_SENDER_ADDRESS: str | None = None
    SMS_VERIFICATION_CODE_EXPIRY_MINUTES: int = 10

    # Echo one-time codes in challenge responses (development only)
    EXPOSE_DEBUG_OTP: bool = False

    # Organizer authentication (tokens are issued by the external session service)
    JWT_ALGORITHM: str = "HS256"

    # Field-Level PII Encryption
    # Base64-encoded 256-bit AES key for encrypting contact channels (email, phone)
    # Generate with: python -c "from core.encryption import generate_encryption_key; print(generate_encryption_key())"
    FIELD_ENCRYPTION_KEY: str | None = None

    # Voter eligibility
    NATIONAL_ID_LENGTH: int = 12
    MINIMUM_VOTING_AGE: int = 18

    # CORS - stored as comma-separated string to avoid pydantic-settings JSON parsing issues
    CORS_ORIGINS: str = "http://localhost:3000"

    @property
    def cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        import json

        try:
            return json.loads(self.CORS_ORIGINS)
        except json.JSONDecodeError:
            return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def debug_otp_enabled(self) -> bool:
        """Whether one-time codes may be echoed back to the caller."""
        return self.EXPOSE_DEBUG_OTP and self.APP_ENV == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
