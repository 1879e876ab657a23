"""Configuration management for the application."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database (only the form configuration is persisted)
    database_url: str = Field(default="sqlite:///./paytrack.db")

    # Receipt extraction
    extraction_backend: Literal["anthropic", "ollama"] = Field(default="anthropic")
    extraction_timeout: float = Field(default=120.0)

    # Anthropic API (for receipt extraction with Claude Vision)
    anthropic_api_key: str | None = Field(default=None)
    extraction_model: str = Field(default="claude-sonnet-4-20250514")

    # Ollama (local vision model)
    ollama_base_url: str = Field(default="http://localhost:11434")
    llm_model: str = Field(default="gemma3:12b")

    # Form submission
    submission_timeout: float = Field(default=30.0)

    # Uploads
    max_upload_bytes: int = Field(default=10 * 1024 * 1024)  # 10MB

    # API
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
    )

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Validate that production has a usable extraction backend."""
        if self.environment == "production":
            if self.extraction_backend == "anthropic" and not self.anthropic_api_key:
                raise ValueError("ANTHROPIC_API_KEY must be set in production")
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
