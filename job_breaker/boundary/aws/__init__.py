"""
AWS boundary modules.

Exports: SQSQueueClient, DryRunQueueClient, S3ArtifactClient
"""

from .s3_client import S3ArtifactClient
from .sqs_client import DryRunQueueClient, SQSQueueClient

__all__ = ["S3ArtifactClient", "SQSQueueClient", "DryRunQueueClient"]
