"""
Unified application settings.

Aggregates the run and AWS configuration with the process-wide logging
options into a single Settings class.

Dependencies: pydantic_settings, all config modules
System role: Central configuration aggregator for the job breaker
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from job_breaker.configs.aws import AWSSettings
from job_breaker.configs.breaker import BreakerSettings


class Settings(BaseSettings):
    """Unified application settings aggregating all config modules."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    debug: bool = Field(
        default=False,
        description="Force DEBUG logging",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    breaker: BreakerSettings = Field(default_factory=BreakerSettings)
    aws: AWSSettings = Field(default_factory=AWSSettings)


@lru_cache
def get_settings() -> Settings:
    """
    Get application settings singleton.

    Environment variables and .env are read once, on first call.

    Returns:
        Settings: Application settings instance

    Usage:
        from job_breaker.configs import get_settings
        settings = get_settings()
    """
    return Settings()
