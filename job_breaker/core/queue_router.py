"""
Active queue routing.

Holds the queue every subsequent task is sent to. The generator can switch it
with a set_queue directive. Owned by the reader thread, so no locking.

Dependencies: job_breaker.core.models, job_breaker.core.retry
System role: Mutable queue reference for the task enqueuer
"""

import logging
import time
from collections.abc import Callable
from typing import Protocol

from job_breaker.core.exceptions import QueueNotFoundError, ReplicationConflictError
from job_breaker.core.models import QueueHandle
from job_breaker.core.retry import retry_with_backoff

logger = logging.getLogger(__name__)


class QueueResolver(Protocol):
    def resolve(self, name: str) -> QueueHandle: ...


class QueueRouter:
    """Resolve queue names and track the active destination."""

    def __init__(
        self,
        resolver: QueueResolver,
        initial_queue: str,
        *,
        max_attempts: int = 1,
        base_delay: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Initialize router and resolve the initial queue.

        Args:
            resolver: Queue service (SQS or dry-run)
            initial_queue: Queue name configured for the run
            max_attempts: Attempts per resolution (a missing queue is never retried)
            base_delay: Linear backoff step in seconds
            sleep: Sleep function for retry backoff

        Raises:
            QueueNotFoundError: Initial queue does not exist
        """
        self._resolver = resolver
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._sleep = sleep
        self._handles: dict[str, QueueHandle] = {}
        self._pinned_reason: str | None = None
        self._active = self._resolve(initial_queue)

    @property
    def active(self) -> QueueHandle:
        """Queue the next message goes to."""
        return self._active

    def _resolve(self, name: str) -> QueueHandle:
        if name not in self._handles:
            self._handles[name] = retry_with_backoff(
                lambda: self._resolver.resolve(name),
                max_attempts=self._max_attempts,
                base_delay=self._base_delay,
                description=f"resolve of queue {name}",
                sleep=self._sleep,
                give_up_on=(QueueNotFoundError,),
            )
        return self._handles[name]

    def pin(self, reason: str) -> None:
        """
        Forbid further queue changes.

        Args:
            reason: Why routing is fixed, reported if a change is attempted
        """
        self._pinned_reason = reason

    def set_queue(self, name: str) -> QueueHandle:
        """
        Switch the active queue for all later messages.

        Switching to the queue that is already active is always allowed.

        Args:
            name: New queue name

        Returns:
            QueueHandle: The now active queue

        Raises:
            ReplicationConflictError: Routing has been pinned
            QueueNotFoundError: Queue does not exist
        """
        if name == self._active.name:
            return self._active
        if self._pinned_reason:
            raise ReplicationConflictError(
                f"Cannot switch to queue {name!r}: {self._pinned_reason}",
                setting="repeat_mode",
                details={"active_queue": self._active.name, "requested_queue": name},
            )
        previous = self._active
        self._active = self._resolve(name)
        logger.info(
            "%s:set_queue - Output queue changed %s -> %s",
            __name__,
            previous.name,
            self._active.name,
        )
        return self._active
