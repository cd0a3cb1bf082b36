"""
Application settings using Pydantic.

Provides environment-based configuration loading with SEM_ prefix.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # AWS emulator endpoint (e.g. LocalStack)
    aws_endpoint_url: str | None = None

    # Logging
    log_level: str = "WARNING"
    log_format: str = "console"  # console, json

    # Explicit config file (overrides the search path)
    config_path: str | None = None

    class Config:
        env_prefix = "SEM_"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
