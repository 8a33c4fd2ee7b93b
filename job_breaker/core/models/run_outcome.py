"""
Run state and outcome models.

Dependencies: pydantic
System role: Return type for JobBreaker.run()
"""

from enum import Enum

from pydantic import BaseModel, Field

EXIT_OK = 0
EXIT_FAILURE = 1
# Fixed status reported when any background upload failed
EXIT_UPLOAD_FAILED = 2
EXIT_INTERRUPTED = 130


class RunState(str, Enum):
    """Job breaker lifecycle states."""

    INIT = "init"
    DIRECT_MODE = "direct_mode"
    SUBPROCESS_MODE = "subprocess_mode"
    REPLICATING = "replicating"
    DONE = "done"


class RunOutcome(BaseModel):
    """Result of one job breaker run."""

    job_id: str = Field(description="Run id, also the correlation id")
    exit_status: int = Field(description="Process exit status for this run")
    task_count: int = Field(default=0, description="Tasks received and enqueued")
    message_count: int = Field(default=0, description="Submissions including replicas")
    pushed_file_count: int = Field(default=0, description="Distinct files pushed")
    upload_errors: list[str] = Field(default_factory=list, description="Failed pushes")
    generator_exit_status: int | None = Field(
        default=None,
        description="Exit status of the generator process (subprocess mode)",
    )
    error: str | None = Field(default=None, description="Fatal error that ended the run")

    @property
    def succeeded(self) -> bool:
        """True when the run exits with status 0."""
        return self.exit_status == EXIT_OK
