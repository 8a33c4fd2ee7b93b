"""
Exception hierarchy for the job breaker.

Provides layered exception structure for run-level failures.
All exceptions include context for observability and debugging.

Dependencies: None (pure domain layer)
System role: Centralized exception handling across the job breaker
"""

from typing import Any


class JobBreakerError(Exception):
    """Base exception for all job breaker errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize base exception with message and optional context.

        Args:
            message: Human-readable error message
            details: Optional dictionary of additional context for debugging
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation including details."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(JobBreakerError):
    """Raised when the run configuration is missing or invalid."""

    def __init__(
        self,
        message: str,
        setting: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize configuration error.

        Args:
            message: Error message
            setting: Name of the offending setting
            details: Additional context
        """
        details = details or {}
        if setting:
            details["setting"] = setting
        super().__init__(message, details)


class QueueNotFoundError(ConfigurationError):
    """Raised when a queue name cannot be resolved."""

    def __init__(self, queue_name: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize queue not found error.

        Args:
            queue_name: Name of the missing queue
            details: Additional context
        """
        details = details or {}
        details["queue_name"] = queue_name
        super().__init__(f"Queue not found: {queue_name}", details=details)


class ReplicationConflictError(ConfigurationError):
    """Raised when a queue change would leave collection replay without a target."""


class ProtocolError(JobBreakerError):
    """Raised when generator output cannot be interpreted."""

    def __init__(
        self,
        message: str,
        line_number: int | None = None,
        line: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize protocol error.

        Args:
            message: Error message
            line_number: 1-based line number in the generator stream
            line: Offending line (truncated for display)
            details: Additional context
        """
        details = details or {}
        if line_number is not None:
            details["line_number"] = line_number
        if line is not None:
            details["line"] = line if len(line) <= 120 else line[:120] + "..."
        self.line_number = line_number
        self.line = line
        super().__init__(message, details)


class TaskFormatError(ProtocolError):
    """Raised when a task payload is not valid structured data."""


class EnqueueError(JobBreakerError):
    """Raised when a message could not be submitted within the retry budget."""

    def __init__(
        self,
        message: str,
        queue_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize enqueue error.

        Args:
            message: Error message
            queue_name: Queue the submission targeted
            details: Additional context
        """
        details = details or {}
        if queue_name:
            details["queue_name"] = queue_name
        super().__init__(message, details)


class ArtifactUploadError(JobBreakerError):
    """Raised when a file push exhausts its retries."""

    def __init__(
        self,
        message: str,
        bucket: str,
        key: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize artifact upload error.

        Args:
            message: Error message
            bucket: Destination bucket
            key: Object key (and local file name)
            details: Additional context
        """
        details = details or {}
        details["bucket"] = bucket
        details["key"] = key
        self.bucket = bucket
        self.key = key
        super().__init__(message, details)
