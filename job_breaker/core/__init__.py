"""
Core job breaker components.

Imports only the exception hierarchy here; the boundary clients depend on
core.exceptions and core.models, and the orchestrator depends on them.
"""

from job_breaker.core.exceptions import (
    ArtifactUploadError,
    ConfigurationError,
    EnqueueError,
    JobBreakerError,
    ProtocolError,
    QueueNotFoundError,
    ReplicationConflictError,
    TaskFormatError,
)

__all__ = [
    "JobBreakerError",
    "ConfigurationError",
    "QueueNotFoundError",
    "ReplicationConflictError",
    "ProtocolError",
    "TaskFormatError",
    "EnqueueError",
    "ArtifactUploadError",
]
