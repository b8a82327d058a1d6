"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Attributes:
        app_name: Name of the application.
        debug: Enable debug mode.
        database_url: Database connection URL.
        secret_key: Secret key for JWT signing.
        access_token_expire_minutes: JWT access token expiration time.
        algorithm: JWT signing algorithm.
        app_url: Public base URL used to build invitation links.
        invitation_expire_days: Validity window of an invitation.
        email_backend: Outbound email transport ("smtp" or "resend").
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Taskboard"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"
    app_url: str = "http://localhost:8000"

    # Database
    database_url: str = "sqlite:///./taskboard.db"

    # Security
    secret_key: str = "change-this-to-a-secure-secret-key"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # CORS (for browser clients)
    cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # Invitations
    invitation_expire_days: int = 7

    # Email settings
    email_backend: Literal["smtp", "resend"] = "smtp"
    email_from: str = "noreply@example.com"
    email_from_name: str = "Taskboard"
    smtp_host: str = ""  # Empty = email delivery disabled
    smtp_port: int = 465
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    resend_api_key: str = ""
    resend_api_url: str = "https://api.resend.com/emails"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Application settings.
    """
    return Settings()
