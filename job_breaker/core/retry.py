"""
Bounded retry with linear backoff.

Wraps every network-dependent call (queue submit, file upload). The last
failure is re-raised unchanged once the attempt budget is spent.

Dependencies: tenacity
System role: Transient error recovery for SQS and S3 operations
"""

import logging
import threading
import time
from typing import Callable, TypeVar

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    stop_when_event_set,
    wait_incrementing,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _log_before_sleep(description: str, max_attempts: int) -> Callable[[RetryCallState], None]:
    def _log(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            "%s:retry_with_backoff - %s failed (attempt %d/%d): %s: %s; retrying in %.1fs",
            __name__,
            description,
            retry_state.attempt_number,
            max_attempts,
            type(exc).__name__,
            exc,
            delay,
        )

    return _log


def retry_with_backoff(
    operation: Callable[[], T],
    *,
    max_attempts: int,
    base_delay: float,
    description: str = "operation",
    sleep: Callable[[float], None] = time.sleep,
    give_up_on: tuple[type[BaseException], ...] = (),
    stop_event: threading.Event | None = None,
) -> T:
    """
    Run an operation, retrying on any exception with linear backoff.

    The n-th retry waits n * base_delay seconds.

    Args:
        operation: Zero-argument callable to execute
        max_attempts: Total attempts including the first (>= 1)
        base_delay: Backoff step in seconds
        description: Label used in retry log lines
        sleep: Sleep function (injectable for tests)
        give_up_on: Exception types raised immediately, without retrying
        stop_event: When set, no further attempt is started

    Returns:
        The operation's return value

    Raises:
        ValueError: max_attempts < 1
        Exception: The last failure after max_attempts attempts
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    stop = stop_after_attempt(max_attempts)
    if stop_event is not None:
        stop = stop | stop_when_event_set(stop_event)

    retrying = Retrying(
        retry=retry_if_exception_type(Exception) & retry_if_not_exception_type(give_up_on),
        stop=stop,
        wait=wait_incrementing(start=base_delay, increment=base_delay),
        before_sleep=_log_before_sleep(description, max_attempts),
        sleep=sleep,
        reraise=True,
    )
    return retrying(operation)
