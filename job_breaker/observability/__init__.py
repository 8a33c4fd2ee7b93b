"""
Observability module.

Provides logging configuration and correlation ID tracking.
"""

from job_breaker.observability.correlation import (
    clear_correlation_id,
    get_correlation_id,
    set_correlation_id,
)
from job_breaker.observability.logger import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
    "set_correlation_id",
    "get_correlation_id",
    "clear_correlation_id",
]
