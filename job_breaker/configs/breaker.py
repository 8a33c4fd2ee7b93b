"""
Job breaker run configuration.

Everything the orchestrator needs for one run: where the job comes from,
which queue receives the tasks, the run preamble, replication and retry
policy.

Dependencies: pydantic, pydantic_settings
System role: Run configuration for the job breaker
"""

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RepeatMode(str, Enum):
    """How tasks are replicated when repeat_count > 0."""

    INLINE = "inline"
    COLLECTION = "collection"


class BreakerSettings(BaseSettings):
    """Settings for a single job breaker run."""

    model_config = SettingsConfigDict(
        env_prefix="JOB_BREAKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Job source (exactly one must be set, checked by job_source())
    command: str | None = Field(
        default=None,
        description="Generator command whose stdout speaks the task protocol",
    )
    job_document: str | None = Field(
        default=None,
        description='Literal JSON job document: {"tasks": [...]}',
    )
    job_file: Path | None = Field(
        default=None,
        description="Path to a JSON job document",
    )

    # Routing
    queue_name: str = Field(
        default="ezq-input",
        description="Initial destination queue for tasks",
    )
    result_queue_name: str | None = Field(
        default=None,
        description="Result queue written into the preamble (defaults to the job id)",
    )
    preamble: dict[str, Any] = Field(
        default_factory=dict,
        description="Run preamble merged under every task (JSON mapping)",
    )

    # Replication
    repeat_count: int = Field(
        default=0,
        ge=0,
        description="Number of additional copies of every task",
    )
    repeat_mode: RepeatMode | None = Field(
        default=None,
        description="Replication mode: inline or collection",
    )

    # Execution
    dry_run: bool = Field(
        default=False,
        description="Print messages instead of calling SQS/S3",
    )
    max_attempts: int = Field(
        default=10,
        ge=1,
        description="Attempts per queue submit or file upload",
    )
    retry_base_delay: float = Field(
        default=1.0,
        ge=0,
        description="Linear backoff step in seconds between attempts",
    )
    max_upload_workers: int = Field(
        default=8,
        ge=1,
        description="Concurrent S3 uploads",
    )

    @model_validator(mode="after")
    def _check_replication(self) -> "BreakerSettings":
        if self.repeat_count > 0 and self.repeat_mode is None:
            raise ValueError("repeat_mode is required when repeat_count > 0")
        return self

    @model_validator(mode="after")
    def _check_result_queue(self) -> "BreakerSettings":
        ezq = self.preamble.get("EZQ")
        if not self.result_queue_name or not isinstance(ezq, dict):
            return self
        in_preamble = ezq.get("result_queue_name")
        if in_preamble is not None and in_preamble != self.result_queue_name:
            raise ValueError(
                f"result_queue_name {self.result_queue_name!r} conflicts with "
                f"EZQ.result_queue_name {in_preamble!r} in the preamble"
            )
        return self

    def job_source(self) -> str:
        """
        Name the configured job source.

        Returns:
            str: "command", "job_document" or "job_file"

        Raises:
            ValueError: Zero or more than one source configured
        """
        configured = [
            name
            for name in ("command", "job_document", "job_file")
            if getattr(self, name)
        ]
        if len(configured) != 1:
            raise ValueError(
                "Exactly one of command, job_document or job_file must be set "
                f"(got: {', '.join(configured) or 'none'})"
            )
        return configured[0]
