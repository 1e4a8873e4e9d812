"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Placeholder secrets that must never reach a running server
INSECURE_SECRETS = {"change-this-secret", "your_jwt_secret", "secret"}


class Settings(BaseSettings):
    # MongoDB
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "udyog_jagat"

    # JWT Auth - secret is required, there is no fallback
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60

    # Email (Brevo)
    brevo_api_key: str = ""
    email_from: str = "noreply@udyogjagat.org"
    email_from_name: str = "Udyog Jagat Team"

    # Portal
    portal_name: str = "Udyog Jagat"
    frontend_base_url: str = "http://localhost:3000"

    # Accounts
    temp_password_length: int = 10
    min_password_length: int = 8
    password_reset_expire_minutes: int = 60

    # Resumes
    max_resume_size_mb: int = 5

    # App
    log_level: str = "INFO"
    debug: bool = False

    @field_validator("jwt_secret_key")
    @classmethod
    def secret_must_be_real(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("JWT_SECRET_KEY must be set")
        if value.strip() in INSECURE_SECRETS:
            raise ValueError("JWT_SECRET_KEY is a placeholder value, set a real secret")
        return value

    @property
    def login_url(self) -> str:
        return f"{self.frontend_base_url.rstrip('/')}/login"

    @property
    def reset_password_url(self) -> str:
        return f"{self.frontend_base_url.rstrip('/')}/reset-password"

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
