"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Runtime environment ("development" attaches debug detail to 500 responses)
    environment: str = "production"

    # Database
    database_url: str | None = None

    # External model (Gemini preferred, OpenAI second, deterministic stub otherwise)
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"
    gemini_api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"

    # Retrieval
    max_clauses_limit: int = 15
    low_priority_limit_ratio: float = 0.7

    # Explainer call (seconds)
    ai_timeout_seconds: float = 8.0
    max_retry_attempts: int = 2
    retry_backoff_seconds: float = 1.0

    # Answer formatting
    clause_preview_length: int = 250

    # Cache TTLs (seconds)
    cache_ttl_seconds: int = 300
    clause_cache_ttl_seconds: int = 180
    cache_sweep_interval_seconds: int = 60

    # Ingestion
    min_document_length: int = 20
    max_upload_bytes: int = 10 * 1024 * 1024

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
