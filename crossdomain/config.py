"""
Configuration management using pydantic-settings.
All settings loaded from environment variables (12-factor app).
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from crossdomain.models.enums import CollectionPolicy


class Settings(BaseSettings):
    """Engine settings loaded from CROSSDOMAIN_* environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CROSSDOMAIN_",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: str = Field(default="info", description="Log level")
    log_format: str = Field(default="json", description="Log format (json|console)")

    # Collection
    collection_policy: CollectionPolicy = Field(
        default=CollectionPolicy.FAIL_FAST,
        description="What a provider failure does to the cycle (fail_fast|best_effort)",
    )
    max_workers: int = Field(
        default=3,
        ge=3,
        le=32,
        description="Worker pool size; one slot per domain provider at minimum",
    )
    provider_timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        description="Per-provider deadline; unset waits for the slowest provider",
    )

    communication_history_size: int = Field(
        default=100, ge=0, description="Finished provider calls kept per domain"
    )

    # Scoring
    clamp_composite_score: bool = Field(
        default=False, description="Clamp end-to-end score to [0, 100]"
    )

    # Development
    dev_mode: bool = Field(default=False, description="Development mode")

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Only json and console renderers exist."""
        v = v.lower()
        if v not in ("json", "console"):
            raise ValueError("log_format must be 'json' or 'console'")
        return v


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to ensure singleton behavior.
    """
    return Settings()
