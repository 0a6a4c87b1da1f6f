"""
Configuration management for QA Tracker.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="QA Tracker")
    debug: bool = Field(default=False)
    environment: str = Field(default="development")

    # API
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    api_workers: int = Field(default=1)
    api_prefix: str = Field(default="/api")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    # Database
    database_url: str = Field(default="sqlite:///./qa_tracker.db")

    # Security
    secret_key: str = Field(default="change-me-in-production")
    jwt_algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(default=24 * 60)
    bcrypt_rounds: int = Field(default=10)
    allow_admin_registration: bool = Field(
        default=True,
        description="Whether POST /auth/register accepts role=admin.",
    )

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json", description="json or console")

    # Email (SMTP)
    smtp_host: str = Field(default="smtp.gmail.com")
    smtp_port: int = Field(default=587)
    smtp_user: Optional[str] = Field(default=None)
    smtp_password: Optional[str] = Field(default=None)
    email_from: Optional[str] = Field(
        default=None, description="Sender address, defaults to SMTP_USER."
    )
    frontend_url: str = Field(default="http://localhost:3000")

    # WhatsApp HTTP gateway
    whatsapp_api_url: str = Field(default="https://wapi.iaportafolio.com/api/sendText")
    whatsapp_api_key: Optional[str] = Field(default=None)
    whatsapp_session: str = Field(default="default")
    whatsapp_timeout_seconds: float = Field(default=15.0)

    # Uploads
    upload_dir: str = Field(default="./uploads")
    upload_max_files: int = Field(default=10)
    upload_max_file_size: int = Field(default=5 * 1024 * 1024)


@lru_cache
def get_settings() -> Settings:
    """Get application settings."""
    return Settings()
