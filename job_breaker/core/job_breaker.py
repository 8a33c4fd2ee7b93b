"""
Job breaker orchestrator.

Owns one run: INIT -> DIRECT_MODE | SUBPROCESS_MODE -> REPLICATING -> DONE.

In direct mode the job is a JSON document {"tasks": [...]} and every task is
enqueued in order. In subprocess mode the generator command is spawned and
its output is read line by line: files are pushed in the background, queue
changes take effect immediately, diagnostics are passed through and tasks are
enqueued in the order they appear. All uploads are joined before the outcome
is computed.

Dependencies: core components, boundary clients, configs, observability
System role: Pipeline orchestration (coordinates only)
"""

import json
import logging
import sys
import time
import uuid
from collections.abc import Callable
from typing import Any, TextIO

from botocore.exceptions import BotoCoreError, ClientError

from job_breaker.boundary.aws import DryRunQueueClient, S3ArtifactClient, SQSQueueClient
from job_breaker.boundary.process import GeneratorProcess, spawn
from job_breaker.configs.aws import AWSSettings
from job_breaker.configs.breaker import BreakerSettings
from job_breaker.core.artifact_pusher import ArtifactPusher
from job_breaker.core.exceptions import (
    ArtifactUploadError,
    ConfigurationError,
    JobBreakerError,
    TaskFormatError,
)
from job_breaker.core.models import (
    EXIT_FAILURE,
    EXIT_OK,
    EXIT_UPLOAD_FAILED,
    LineKind,
    ProtocolLine,
    RunOutcome,
    RunState,
)
from job_breaker.core.protocol_reader import ProtocolReader
from job_breaker.core.queue_router import QueueRouter
from job_breaker.core.task_enqueuer import TaskEnqueuer
from job_breaker.observability.correlation import set_correlation_id
from job_breaker.observability.log_utils import log_exception_with_context, safe_log_value

logger = logging.getLogger(__name__)


def serialize_task(task: Any) -> str:
    """Return a direct-mode task as text: strings verbatim, anything else as JSON."""
    if isinstance(task, str):
        return task
    return json.dumps(task)


def _exit_status_of(returncode: int) -> int:
    # Popen reports death by signal N as -N; shells report 128 + N
    return 128 - returncode if returncode < 0 else returncode


class JobBreaker:
    """Break one job into tasks and enqueue them."""

    def __init__(
        self,
        settings: BreakerSettings,
        *,
        aws_settings: AWSSettings | None = None,
        queue_client=None,
        blob_client=None,
        spawner: Callable[[str], GeneratorProcess] = spawn,
        output: TextIO | None = None,
        job_id: str | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        """
        Initialize orchestrator. No work starts until run().

        Args:
            settings: Run configuration
            aws_settings: Region/endpoint for default boto3 clients
            queue_client: Queue service override (defaults to SQS or dry run)
            blob_client: Blob service override (defaults to S3)
            spawner: Starts the generator command
            output: Channel for pass-through diagnostics and dry-run messages
            job_id: Run id (generated if None)
            sleep: Sleep function for retry backoff (uploads default to a
                wait that an abort interrupts)
        """
        self._settings = settings
        self._aws_settings = aws_settings or AWSSettings()
        self._queue_client = queue_client
        self._blob_client = blob_client
        self._spawner = spawner
        self._output = output or sys.stdout
        self._sleep = sleep

        self.job_id = job_id or str(uuid.uuid4())
        self.state = RunState.INIT

        self._router: QueueRouter | None = None
        self._enqueuer: TaskEnqueuer | None = None
        self._pusher: ArtifactPusher | None = None
        self._process: GeneratorProcess | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> RunOutcome:
        """
        Execute the run.

        Fatal errors are logged and reported through the outcome. Interrupts
        stop the generator, cancel queued uploads and propagate.

        Returns:
            RunOutcome: Exit status and run counters
        """
        set_correlation_id(self.job_id)
        logger.info("%s:run - Starting job %s", __name__, self.job_id)

        generator_status: int | None = None
        upload_errors: list[ArtifactUploadError] = []
        try:
            source = self._initialize()
            if source == "command":
                self.state = RunState.SUBPROCESS_MODE
                generator_status = self._run_subprocess_mode()
            else:
                self.state = RunState.DIRECT_MODE
                self._run_direct_mode(source)

            upload_errors = self._pusher.join()

            if self._enqueuer.sent_messages and self._settings.repeat_count:
                self.state = RunState.REPLICATING
                self._enqueuer.replay()

        except (JobBreakerError, BotoCoreError, ClientError) as e:
            log_exception_with_context(logger, f"{__name__}:run - Job {self.job_id} aborted", e)
            self._abort()
            return self._finish(EXIT_FAILURE, generator_status, upload_errors, error=str(e))
        except KeyboardInterrupt:
            logger.warning("%s:run - Interrupted, abandoning job %s", __name__, self.job_id)
            self._abort()
            raise

        if upload_errors:
            exit_status = EXIT_UPLOAD_FAILED
        elif generator_status:
            logger.warning(
                "%s:run - Generator exited with status %d", __name__, generator_status
            )
            exit_status = generator_status
        else:
            exit_status = EXIT_OK
        return self._finish(exit_status, generator_status, upload_errors)

    def _initialize(self) -> str:
        settings = self._settings
        try:
            source = settings.job_source()
        except ValueError as e:
            raise ConfigurationError(str(e), setting="command") from e

        if settings.dry_run:
            queue_client = self._queue_client or DryRunQueueClient(self._output)
            blob_client = self._blob_client
        else:
            queue_client = self._queue_client or SQSQueueClient(
                region=self._aws_settings.region,
                endpoint_url=self._aws_settings.endpoint_url,
            )
            blob_client = self._blob_client or S3ArtifactClient(
                region=self._aws_settings.region,
                endpoint_url=self._aws_settings.endpoint_url,
            )

        self._pusher = ArtifactPusher(
            blob_client,
            max_workers=settings.max_upload_workers,
            max_attempts=settings.max_attempts,
            base_delay=settings.retry_base_delay,
            dry_run=settings.dry_run,
            sleep=self._sleep,
        )
        self._router = QueueRouter(
            queue_client,
            settings.queue_name,
            max_attempts=settings.max_attempts,
            base_delay=settings.retry_base_delay,
            sleep=self._sleep or time.sleep,
        )
        self._enqueuer = TaskEnqueuer(
            queue_client,
            self._router,
            base_preamble=settings.preamble,
            result_queue_name=settings.result_queue_name or self.job_id,
            pushed_files=lambda: self._pusher.pushed_files,
            repeat_count=settings.repeat_count,
            repeat_mode=settings.repeat_mode,
            max_attempts=settings.max_attempts,
            base_delay=settings.retry_base_delay,
            job_id=self.job_id,
            sleep=self._sleep or time.sleep,
        )
        logger.info(
            "%s:_initialize - source=%s queue=%s repeat=%d mode=%s dry_run=%s",
            __name__,
            source,
            self._router.active.name,
            settings.repeat_count,
            settings.repeat_mode.value if settings.repeat_mode else "none",
            settings.dry_run,
        )
        return source

    def _abort(self) -> None:
        if self._process is not None:
            self._process.terminate()
        if self._pusher is not None:
            self._pusher.shutdown(cancel_pending=True)

    def _finish(
        self,
        exit_status: int,
        generator_status: int | None,
        upload_errors: list[ArtifactUploadError],
        error: str | None = None,
    ) -> RunOutcome:
        self.state = RunState.DONE
        outcome = RunOutcome(
            job_id=self.job_id,
            exit_status=exit_status,
            task_count=self._enqueuer.task_count if self._enqueuer else 0,
            message_count=self._enqueuer.message_count if self._enqueuer else 0,
            pushed_file_count=len(self._pusher.pushed_files) if self._pusher else 0,
            upload_errors=[str(e) for e in upload_errors],
            generator_exit_status=generator_status,
            error=error,
        )
        log = logger.info if outcome.succeeded else logger.error
        log(
            "%s:_finish - Job %s finished status=%d tasks=%d messages=%d files=%d",
            __name__,
            self.job_id,
            outcome.exit_status,
            outcome.task_count,
            outcome.message_count,
            outcome.pushed_file_count,
        )
        return outcome

    # ------------------------------------------------------------------
    # Modes
    # ------------------------------------------------------------------

    def _load_job_document(self, source: str) -> list[Any]:
        if source == "job_file":
            path = self._settings.job_file
            try:
                text = path.read_text(encoding="utf-8")
            except OSError as e:
                raise ConfigurationError(
                    f"Cannot read job file {path}: {e}", setting="job_file"
                ) from e
        else:
            text = self._settings.job_document

        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Job document is not valid JSON: {e}", setting=source) from e

        if not isinstance(document, dict) or not isinstance(document.get("tasks"), list):
            raise ConfigurationError(
                'Job document must be an object with a "tasks" array', setting=source
            )
        return document["tasks"]

    def _run_direct_mode(self, source: str) -> None:
        tasks = self._load_job_document(source)
        logger.info("%s:_run_direct_mode - Enqueuing %d tasks", __name__, len(tasks))
        for task in tasks:
            self._enqueuer.enqueue(serialize_task(task))

    def _run_subprocess_mode(self) -> int:
        command = self._settings.command
        try:
            self._process = self._spawner(command)
        except (OSError, ValueError) as e:
            raise ConfigurationError(
                f"Cannot start generator {command!r}: {e}", setting="command"
            ) from e

        reader = ProtocolReader(self._process.lines())
        for line in reader:
            self._dispatch(line)

        returncode = self._process.wait()
        self._process = None
        logger.info(
            "%s:_run_subprocess_mode - Generator finished after %d lines, status=%d",
            __name__,
            reader.lines_read,
            returncode,
        )
        return _exit_status_of(returncode)

    def _dispatch(self, line: ProtocolLine) -> None:
        if line.kind is LineKind.PUSH_FILE:
            self._pusher.push(line.bucket, line.key)
        elif line.kind is LineKind.ERROR_MESSAGE:
            self._output.write(line.text + "\n")
            self._output.flush()
            logger.warning(
                "%s:_dispatch - Generator reported: %s", __name__, safe_log_value(line.text)
            )
        elif line.kind is LineKind.SET_QUEUE:
            self._router.set_queue(line.queue_name)
        else:
            try:
                self._enqueuer.enqueue(line.text, require_structured=True)
            except TaskFormatError as e:
                raise TaskFormatError(
                    e.message,
                    line_number=line.line_number,
                    line=line.text,
                    details=dict(e.details),
                ) from e
