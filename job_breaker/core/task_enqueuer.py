"""
Task enqueuer.

Wraps each task in the merged EZQ preamble and submits it to the active
queue under bounded retry, replicating it inline or as a collection replay
when configured.

Dependencies: job_breaker.core.preamble, job_breaker.core.retry
System role: Message production for the job breaker
"""

import logging
import time
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Protocol

from job_breaker.configs.breaker import RepeatMode
from job_breaker.core.exceptions import EnqueueError
from job_breaker.core.models import EnqueuedMessage, PushedFile, QueueHandle
from job_breaker.core.preamble import build_run_preamble, merge_preamble, render_message
from job_breaker.core.queue_router import QueueRouter
from job_breaker.core.retry import retry_with_backoff

logger = logging.getLogger(__name__)


class QueueSubmitter(Protocol):
    def submit(
        self, queue: QueueHandle, body: str, attributes: dict[str, str] | None = None
    ) -> str: ...


class TaskEnqueuer:
    """Serialize tasks with their preamble and submit them in order."""

    def __init__(
        self,
        queue_client: QueueSubmitter,
        router: QueueRouter,
        *,
        base_preamble: Mapping[str, Any],
        result_queue_name: str,
        pushed_files: Callable[[], Iterable[PushedFile]] = tuple,
        repeat_count: int = 0,
        repeat_mode: RepeatMode | None = None,
        max_attempts: int = 10,
        base_delay: float = 1.0,
        job_id: str = "",
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Initialize enqueuer.

        Args:
            queue_client: Queue service used for submissions
            router: Source of the active queue
            base_preamble: Configured run preamble
            result_queue_name: Result queue written into every preamble
            pushed_files: Returns the files pushed so far
            repeat_count: Additional copies of each task
            repeat_mode: inline or collection (None disables replication)
            max_attempts: Attempts per submission
            base_delay: Linear backoff step in seconds
            job_id: Attached to every message as the job_id attribute
            sleep: Sleep function for retry backoff
        """
        if repeat_count < 0:
            raise ValueError(f"repeat_count must be >= 0, got {repeat_count}")

        self._client = queue_client
        self._router = router
        self._base_preamble = dict(base_preamble)
        self._result_queue_name = result_queue_name
        self._pushed_files = pushed_files
        self._repeat_count = repeat_count if repeat_mode else 0
        self._repeat_mode = repeat_mode
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._attributes = {"job_id": job_id} if job_id else None
        self._sleep = sleep

        self._sent: list[EnqueuedMessage] = []
        self.task_count = 0
        self.message_count = 0

    @property
    def sent_messages(self) -> list[EnqueuedMessage]:
        """Messages as first submitted, in source order."""
        return list(self._sent)

    def enqueue(self, task_text: str, require_structured: bool = False) -> EnqueuedMessage:
        """
        Merge the preamble into one task and submit it.

        Args:
            task_text: Serialized task
            require_structured: Only accept mapping or sequence bodies

        Returns:
            EnqueuedMessage: The submitted message

        Raises:
            TaskFormatError: Task cannot be parsed
            EnqueueError: Submission failed after all retries
        """
        run_preamble = build_run_preamble(
            self._base_preamble,
            self._result_queue_name,
            self._pushed_files(),
        )
        cleaned, merged = merge_preamble(task_text, run_preamble, require_structured)
        body = render_message(cleaned, merged)

        queue = self._router.active
        message_id = self._submit(queue, body)
        record = EnqueuedMessage(body=body, queue=queue, message_id=message_id)
        self._sent.append(record)
        self.task_count += 1

        if self._repeat_mode is RepeatMode.COLLECTION and self._repeat_count:
            self._router.pin(
                "collection replication replays every message to the queue it "
                "was first sent to, and messages have already been sent"
            )
        elif self._repeat_mode is RepeatMode.INLINE:
            for _ in range(self._repeat_count):
                self._submit(queue, body)

        return record

    def replay(self) -> int:
        """
        Re-submit all sent messages repeat_count more times (collection mode).

        Returns:
            int: Number of replicated submissions

        Raises:
            EnqueueError: Submission failed after all retries
        """
        if self._repeat_mode is not RepeatMode.COLLECTION or not self._repeat_count:
            return 0

        snapshot = list(self._sent)
        replicated = 0
        for pass_number in range(1, self._repeat_count + 1):
            logger.info(
                "%s:replay - Replication pass %d/%d (%d messages)",
                __name__,
                pass_number,
                self._repeat_count,
                len(snapshot),
            )
            for record in snapshot:
                self._submit(record.queue, record.body)
                replicated += 1
        return replicated

    def _submit(self, queue: QueueHandle, body: str) -> str:
        try:
            message_id = retry_with_backoff(
                lambda: self._client.submit(queue, body, self._attributes),
                max_attempts=self._max_attempts,
                base_delay=self._base_delay,
                description=f"send to queue {queue.name}",
                sleep=self._sleep,
            )
        except Exception as e:
            raise EnqueueError(
                f"Failed to enqueue message after {self._max_attempts} attempts: {e}",
                queue_name=queue.name,
                details={"task_index": self.task_count},
            ) from e
        self.message_count += 1
        return message_id
