"""
Queue routing and message models.

Dependencies: pydantic
System role: Queue references and the retained record of sent messages
"""

from pydantic import BaseModel, ConfigDict, Field


class QueueHandle(BaseModel):
    """A logical queue name resolved to an addressable queue URL."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Logical queue name")
    url: str = Field(description="Queue URL used for send_message")


class EnqueuedMessage(BaseModel):
    """A message as it was submitted, kept for collection replay."""

    model_config = ConfigDict(frozen=True)

    body: str = Field(description="Wire text: preamble document + task body")
    queue: QueueHandle = Field(description="Queue the message was first sent to")
    message_id: str = Field(default="", description="Message id returned by the queue")
