"""
Models for the job breaker.

Exports: PushedFile, QueueHandle, EnqueuedMessage, LineKind, ProtocolLine,
RunState, RunOutcome and exit status constants
"""

from .message import EnqueuedMessage, QueueHandle
from .protocol import LineKind, ProtocolLine
from .pushed_file import PushedFile
from .run_outcome import (
    EXIT_FAILURE,
    EXIT_INTERRUPTED,
    EXIT_OK,
    EXIT_UPLOAD_FAILED,
    RunOutcome,
    RunState,
)

__all__ = [
    "PushedFile",
    "QueueHandle",
    "EnqueuedMessage",
    "LineKind",
    "ProtocolLine",
    "RunState",
    "RunOutcome",
    "EXIT_OK",
    "EXIT_FAILURE",
    "EXIT_UPLOAD_FAILED",
    "EXIT_INTERRUPTED",
]
