"""
S3 client for artifact pushes.

Uploads local files referenced by generator push_file directives.

Dependencies: boto3
System role: Blob storage used by the artifact pusher
"""

from pathlib import Path

import boto3


class S3ArtifactClient:
    """S3 client for uploading run artifacts."""

    def __init__(
        self,
        region: str = "us-east-1",
        endpoint_url: str | None = None,
        client=None,
    ) -> None:
        """
        Initialize S3 client.

        boto3 clients are thread-safe, so one instance serves every upload
        worker.

        Args:
            region: AWS region for S3 buckets
            endpoint_url: Optional endpoint override
            client: Pre-built boto3 S3 client
        """
        self._region = region
        self._s3_client = client or boto3.client(
            "s3", region_name=region, endpoint_url=endpoint_url
        )

    def upload(self, bucket: str, key: str, local_path: str) -> None:
        """
        Upload a local file.

        Args:
            bucket: Destination bucket
            key: Object key
            local_path: File to upload

        Raises:
            FileNotFoundError: Local file missing
            S3UploadFailedError: Upload failed
        """
        path = Path(local_path)
        if not path.is_file():
            raise FileNotFoundError(f"File to push not found: {local_path}")

        self._s3_client.upload_file(
            Filename=str(path),
            Bucket=bucket,
            Key=key,
        )
