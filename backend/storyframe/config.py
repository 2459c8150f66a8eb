from __future__ import annotations
"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from urllib.parse import quote_plus

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Storyframe application settings.

    Loaded from environment variables or .env file. Handlers receive the
    instance through ``Depends(get_settings)`` so tests can swap it out.
    """

    # --- Application ---
    APP_NAME: str = "Storyframe"
    DEBUG: bool = False
    CORS_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000"
    AUTO_CREATE_TABLES: bool = False

    # --- Database (MySQL 8.0+) ---
    DB_HOST: str = "127.0.0.1"
    DB_PORT: int = 3306
    DB_USER: str = "root"
    DB_PASSWORD: str = ""
    DB_NAME: str = "storyframe"
    DB_URL: str = ""  # full SQLAlchemy URL, overrides the DB_* parts

    @property
    def DATABASE_URL(self) -> str:
        """Async connection string, asyncmy driver unless DB_URL is set."""
        if self.DB_URL:
            return self.DB_URL
        encoded_password = quote_plus(self.DB_PASSWORD)
        return (
            f"mysql+asyncmy://{self.DB_USER}:{encoded_password}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
            "?charset=utf8mb4"
        )

    # --- Storage ---
    STORAGE_BACKEND: str = "local"  # local | s3
    MEDIA_VOLUME: str = "media_volume"
    REF_BUCKET: str = "story-refs"
    RENDER_BUCKET: str = "story-renders"
    SIGNED_URL_TTL: int = 3600
    STORAGE_SIGNING_SECRET: str = "change-me"
    PUBLIC_BASE_URL: str = "http://localhost:8000"

    S3_ENDPOINT_URL: str = ""
    S3_REGION: str = "auto"
    S3_ACCESS_KEY_ID: str = ""
    S3_SECRET_ACCESS_KEY: str = ""

    # --- Auth ---
    AUTH_JWT_SECRET: str = ""
    AUTH_JWT_ALGORITHM: str = "HS256"
    AUTH_JWT_ISSUER: str = ""
    AUTH_JWT_AUDIENCE: str = ""

    # --- Image Provider Strategy ---
    AI_IMAGE_PROVIDER: str = "auto"  # auto | openai | google | stability | openrouter | placeholder
    AI_IMAGE_MODEL: str = ""
    ENABLE_VERTEX_AI: bool = False

    OPENAI_API_KEY: str = ""
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    OPENAI_IMAGE_MODEL: str = "gpt-image-1"

    GOOGLE_API_KEY: str = ""
    GOOGLE_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    GOOGLE_IMAGE_MODEL: str = "gemini-3-pro-image-preview"

    STABILITY_API_KEY: str = ""
    STABILITY_BASE_URL: str = "https://api.stability.ai/v1"
    STABILITY_ENGINE: str = "stable-diffusion-xl-1024-v1-0"

    OPENROUTER_API_KEY: str = ""
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
    OPENROUTER_IMAGE_MODEL: str = "google/gemini-2.5-flash-image"

    PROVIDER_TIMEOUT: float = 120.0
    PROVIDER_MAX_RETRIES: int = 1
    PROVIDER_RETRY_DELAY: float = 2.0

    # --- Pipeline ---
    DEFAULT_TOP_POSES: int = 3
    CONTINUATION_VARIANTS: int = 5
    PREVIOUS_FRAME_LIMIT: int = 2
    RECENT_ASSET_LIMIT: int = 30

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings singleton."""
    return Settings()
