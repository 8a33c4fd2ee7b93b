"""
Configuration management module.

Provides centralized, type-safe configuration using Pydantic Settings.
All config modules support environment variable mapping with validation.
"""

from job_breaker.configs.aws import AWSSettings
from job_breaker.configs.breaker import BreakerSettings, RepeatMode
from job_breaker.configs.settings import Settings, get_settings

__all__ = ["AWSSettings", "BreakerSettings", "RepeatMode", "Settings", "get_settings"]
