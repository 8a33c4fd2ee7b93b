"""
Pushed file descriptor.

Names a file uploaded (or in flight) during the current run. Descriptors are
listed in the preamble under EZQ.get_s3_files so workers can fetch them.

Dependencies: pydantic
System role: Dedup identity for artifact pushes, preamble entry
"""

from pydantic import BaseModel, ConfigDict, Field


class PushedFile(BaseModel):
    """S3 location of a pushed artifact; hashable on (bucket, key)."""

    model_config = ConfigDict(frozen=True)

    bucket: str = Field(min_length=1, description="Destination S3 bucket")
    key: str = Field(min_length=1, description="Object key, equal to the local file name")

    def as_preamble_entry(self) -> dict[str, str]:
        """Return the {bucket, key} mapping written into the preamble."""
        return {"bucket": self.bucket, "key": self.key}
