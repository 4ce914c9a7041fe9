"""
Configuration settings for GPS Pay
Handles environment variables and application settings
"""
import os
from typing import Optional, List
from pydantic_settings import BaseSettings
from pydantic import field_validator


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "GPS-PAY"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # Public site (used for auth redirects)
    SITE_URL: str = os.getenv("SITE_URL", "http://localhost:3000")

    # Supabase settings
    SUPABASE_URL: Optional[str] = os.getenv("SUPABASE_URL")
    SUPABASE_ANON_KEY: Optional[str] = os.getenv("SUPABASE_ANON_KEY")
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = os.getenv("SUPABASE_SERVICE_ROLE_KEY")

    # Remote calls to Supabase are cancelled after this many seconds
    REMOTE_CALL_TIMEOUT_SECONDS: float = float(os.getenv("REMOTE_CALL_TIMEOUT_SECONDS", "15"))

    # Open registration wizards live in process memory
    WIZARD_IDLE_TTL_SECONDS: float = float(os.getenv("WIZARD_IDLE_TTL_SECONDS", "1800"))
    WIZARD_MAX_OPEN: int = int(os.getenv("WIZARD_MAX_OPEN", "10000"))

    # Redis (draft store); empty means in-memory only
    REDIS_URL: Optional[str] = os.getenv("REDIS_URL")

    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:3001",
    ]

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields from .env file


# Create settings instance
settings = Settings()


# Environment-specific overrides
if settings.ENVIRONMENT == "development":
    settings.DEBUG = True
    settings.ALLOWED_ORIGINS.extend([
        "http://localhost:8000",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:8000"
    ])


# Validation
def validate_settings():
    """Validate critical settings"""
    issues = []

    if not settings.SUPABASE_URL:
        issues.append("SUPABASE_URL must be set")
    if not settings.SUPABASE_ANON_KEY:
        issues.append("SUPABASE_ANON_KEY must be set")
    if settings.REMOTE_CALL_TIMEOUT_SECONDS <= 0:
        issues.append("REMOTE_CALL_TIMEOUT_SECONDS must be positive")
    if settings.WIZARD_IDLE_TTL_SECONDS <= 0 or settings.WIZARD_MAX_OPEN <= 0:
        issues.append("WIZARD_IDLE_TTL_SECONDS and WIZARD_MAX_OPEN must be positive")

    if issues:
        raise ValueError(f"Configuration issues: {', '.join(issues)}")


# Auto-validate on import in production
if settings.ENVIRONMENT == "production":
    validate_settings()
