"""
Centralized settings management using pydantic-settings.

All environment variables are defined here. Use get_settings() to access
the cached instance and build_config() to turn it into the immutable
RecommenderConfig handed to every component.
"""

from dataclasses import replace
from functools import lru_cache
from typing import Dict, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from config.constants import (
    RecommenderConfig,
    ScoringWeights,
    VectorizerConfig,
)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Nothing is required; all fields have development defaults.

    Notable environment variables:
        - ENVIRONMENT: development, testing, staging, production
        - LOG_LEVEL / JSON_LOGS: logging output
        - REDIS_URL / REDIS_ENABLED: persisted interest profiles and
          A/B assignment cache
        - SCORING_WEIGHTS: JSON object overriding composite weights,
          e.g. '{"content_based": 0.5, "collaborative": 0.15}'
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Environment
    # ==========================================================================
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Debug mode")

    @property
    def is_development(self) -> bool:
        return self.environment.lower() in ("development", "dev", "local")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in ("production", "prod")

    # ==========================================================================
    # Logging
    # ==========================================================================
    log_level: str = Field(default="INFO", description="Minimum log level")
    json_logs: bool = Field(default=False, description="Emit JSON log lines")

    @field_validator("log_level", mode="before")
    @classmethod
    def parse_log_level(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    # ==========================================================================
    # Redis Configuration
    # ==========================================================================
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL"
    )
    redis_enabled: bool = Field(
        default=False,
        description="Persist interest profiles and A/B assignments in Redis"
    )
    profile_ttl_seconds: int = Field(
        default=180 * 24 * 3600,
        description="TTL of a persisted interest profile (180 days)"
    )
    assignment_ttl_seconds: int = Field(
        default=30 * 24 * 3600,
        description="TTL of a cached A/B variant assignment (30 days)"
    )

    # ==========================================================================
    # Recommendation Defaults
    # ==========================================================================
    default_limit: int = Field(default=20, ge=1, description="Default top-N")
    max_limit: int = Field(default=100, ge=1, description="Upper bound for top-N")
    vector_size: int = Field(default=50, ge=1, description="Content vector length")
    scoring_workers: int = Field(
        default=1, ge=1,
        description="Threads for the candidate scoring map (1 = sequential)"
    )
    request_timeout_seconds: Optional[float] = Field(
        default=None,
        description="Default per-request deadline; None disables it"
    )
    scoring_weights: Optional[Dict[str, float]] = Field(
        default=None,
        description="Composite weight overrides, validated at load time"
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Uses lru_cache to ensure only one instance is created.
    """
    return Settings()


def get_settings_for_testing(**overrides) -> Settings:
    """
    Create a settings instance for testing with optional overrides.

    This bypasses the cache to allow different settings in tests.
    """
    test_defaults = {
        "environment": "testing",
        "debug": True,
    }
    test_defaults.update(overrides)
    return Settings(_env_file=None, **test_defaults)


def build_config(settings: Optional[Settings] = None) -> RecommenderConfig:
    """
    Derive the immutable RecommenderConfig from environment settings.

    Weight overrides are validated here, once, rather than per request.

    Raises:
        ConfigurationError: weights unknown, negative, or not summing to 1.0.
    """
    settings = settings or get_settings()
    base = RecommenderConfig()

    weights = base.weights
    if settings.scoring_weights:
        weights = ScoringWeights.from_mapping(settings.scoring_weights)

    return replace(
        base,
        weights=weights,
        vectorizer=VectorizerConfig(vector_size=settings.vector_size),
        default_limit=min(settings.default_limit, settings.max_limit),
        max_limit=settings.max_limit,
        scoring_workers=settings.scoring_workers,
    )
