"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    openai_api_key: str
    openai_model: str = "gpt-4.1-mini"
    openai_image_generation: bool = True
    analysis_timeout_seconds: float = 300.0
    google_api_key: str
    veo_model: str = "veo-3.0-generate-001"
    rate_limit_requests: int = 10
    rate_limit_tokens: int = 250_000
    max_images: int = 5
    max_file_size_bytes: int = 5 * 1024 * 1024
    max_total_size_bytes: int = 20 * 1024 * 1024
    max_prompt_chars: int = 2000
    session_ttl_seconds: int = 3600
    cleanup_interval_seconds: int = 300
    cors_origins: str = "http://localhost:3000"
    log_level: str = "INFO"
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 3001
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_cors_origins(raw: str | None) -> list[str]:
    """Parse allowed CORS origins from env."""
    if raw is None:
        return []
    cleaned = raw.strip()
    if cleaned == "*":
        return ["*"]
    return [origin.strip() for origin in cleaned.split(",") if origin.strip()]
