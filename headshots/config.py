"""
Application configuration using environment variables.
"""
import os
import secrets
from functools import lru_cache
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Headshots API"
    debug: bool = False
    environment: str = "development"
    # Public base URL of this API, used for provider callbacks and media links
    app_url: str = "http://localhost:8000"

    # Security
    secret_key: str = os.getenv("SECRET_KEY", secrets.token_urlsafe(32))
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60  # 1 hour
    refresh_token_expire_days: int = 7

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./headshots.db")

    # CORS
    cors_origins: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Rate limiting
    login_rate_limit: str = "5/minute"
    shoot_rate_limit: str = "10/minute"
    webhook_rate_limit: str = "120/minute"

    # Replicate
    replicate_api_token: str = ""
    replicate_api_url: str = "https://api.replicate.com/v1"
    replicate_timeout_seconds: int = 30
    replicate_webhook_secret: Optional[str] = None
    # Base model used for studios trained elsewhere and published as Hugging Face LoRAs
    lora_base_model: str = "black-forest-labs/flux-dev-lora"

    # Generated images
    media_dir: str = "./data/media"
    media_url_prefix: str = "/media"

    # Polling client
    poll_interval_seconds: float = 5.0

    # Public gallery
    gallery_default_limit: int = 20
    gallery_max_limit: int = 50

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    @property
    def media_base_url(self) -> str:
        return f"{self.app_url.rstrip('/')}{self.media_url_prefix}"

    @property
    def replicate_webhook_url(self) -> str:
        return f"{self.app_url.rstrip('/')}/api/webhooks/replicate"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Validate secret key on startup
settings = get_settings()
if settings.environment == "production" and not os.getenv("SECRET_KEY"):
    raise ValueError(
        "SECRET_KEY must be set in production! "
        "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(32))\""
    )
