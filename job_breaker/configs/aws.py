"""
AWS connection configuration.

Region and optional endpoint override shared by the SQS and S3 clients.
Credentials are resolved by the boto3 default chain, not here.

Dependencies: pydantic_settings
System role: AWS client configuration
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AWSSettings(BaseSettings):
    """Settings for boto3 clients."""

    model_config = SettingsConfigDict(
        env_prefix="AWS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    region: str = Field(
        default="us-east-1",
        description="AWS region for SQS queues and S3 buckets",
    )
    endpoint_url: str | None = Field(
        default=None,
        description="Endpoint override (e.g. a local SQS/S3 emulator)",
    )
