"""
SQS client for task queues.

Resolves queue names to URLs and submits task messages. A dry-run variant
writes messages to a text stream instead.

Dependencies: boto3
System role: Queue service used by the queue router and task enqueuer
"""

import itertools
import logging
import sys
from typing import TextIO

import boto3
from botocore.exceptions import ClientError

from job_breaker.core.exceptions import QueueNotFoundError
from job_breaker.core.models import QueueHandle

logger = logging.getLogger(__name__)

_MISSING_QUEUE_CODES = {
    "AWS.SimpleQueueService.NonExistentQueue",
    "QueueDoesNotExist",
}


class SQSQueueClient:
    """SQS client for resolving queues and sending task messages."""

    def __init__(
        self,
        region: str = "us-east-1",
        endpoint_url: str | None = None,
        client=None,
    ) -> None:
        """
        Initialize SQS client.

        Args:
            region: AWS region of the queues
            endpoint_url: Optional endpoint override
            client: Pre-built boto3 SQS client (tests, shared sessions)
        """
        self._region = region
        self._sqs = client or boto3.client(
            "sqs", region_name=region, endpoint_url=endpoint_url
        )

    def resolve(self, name: str) -> QueueHandle:
        """
        Resolve a queue name to its URL.

        Args:
            name: Queue name

        Returns:
            QueueHandle: Name and URL

        Raises:
            QueueNotFoundError: Queue does not exist
            ClientError: Any other SQS failure
        """
        try:
            response = self._sqs.get_queue_url(QueueName=name)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _MISSING_QUEUE_CODES:
                raise QueueNotFoundError(name, {"region": self._region}) from e
            raise
        handle = QueueHandle(name=name, url=response["QueueUrl"])
        logger.info("%s:resolve - Resolved queue %s -> %s", __name__, name, handle.url)
        return handle

    def submit(
        self,
        queue: QueueHandle,
        body: str,
        attributes: dict[str, str] | None = None,
    ) -> str:
        """
        Send one message.

        Args:
            queue: Destination queue
            body: Message body
            attributes: String message attributes (e.g. job_id)

        Returns:
            str: SQS message id

        Raises:
            ClientError: SQS rejected the message
        """
        params = {"QueueUrl": queue.url, "MessageBody": body}
        if attributes:
            params["MessageAttributes"] = {
                name: {"DataType": "String", "StringValue": value}
                for name, value in attributes.items()
                if value
            }
        response = self._sqs.send_message(**params)
        message_id = response.get("MessageId", "")
        logger.debug(
            "%s:submit - Sent message queue=%s msg_id=%s bytes=%d",
            __name__,
            queue.name,
            message_id,
            len(body.encode("utf-8")),
        )
        return message_id


class DryRunQueueClient:
    """Queue client that prints messages instead of sending them."""

    def __init__(self, output: TextIO | None = None) -> None:
        self._output = output or sys.stdout
        self._counter = itertools.count(1)

    def resolve(self, name: str) -> QueueHandle:
        return QueueHandle(name=name, url=f"dry-run://{name}")

    def submit(
        self,
        queue: QueueHandle,
        body: str,
        attributes: dict[str, str] | None = None,
    ) -> str:
        message_id = f"dry-run-{next(self._counter)}"
        self._output.write(f"# {message_id} -> {queue.name}\n")
        self._output.write(body if body.endswith("\n") else body + "\n")
        self._output.flush()
        return message_id
