"""
Generator protocol line model.

Dependencies: pydantic
System role: Output of the protocol reader, input of the orchestrator dispatch
"""

from enum import Enum

from pydantic import BaseModel, Field


class LineKind(str, Enum):
    """Categories a generator line can fall into, in precedence order."""

    PUSH_FILE = "push_file"
    ERROR_MESSAGE = "error_messages"
    SET_QUEUE = "set_queue"
    TASK = "task"


class ProtocolLine(BaseModel):
    """One classified line of generator output."""

    kind: LineKind
    line_number: int = Field(ge=1, description="1-based position in the stream")
    text: str = Field(default="", description="Task text or error message text")
    bucket: str | None = Field(default=None, description="push_file bucket")
    key: str | None = Field(default=None, description="push_file file name / key")
    queue_name: str | None = Field(default=None, description="set_queue target")
