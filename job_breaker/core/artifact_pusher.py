"""
Artifact pusher.

Uploads files named by push_file directives to S3 in the background, once
per distinct (bucket, key) per run. Uploads run on a thread pool while the
reader keeps consuming generator output; join() is the barrier the
orchestrator crosses before it reports an outcome.

Dependencies: concurrent.futures, contextvars, job_breaker.core.retry
System role: Concurrent, deduplicated side channel to blob storage
"""

import contextvars
import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Protocol

from job_breaker.core.exceptions import ArtifactUploadError
from job_breaker.core.models import PushedFile
from job_breaker.core.retry import retry_with_backoff

logger = logging.getLogger(__name__)


class UploadCancelledError(Exception):
    """Raised inside a worker when the pusher has been shut down."""


class BlobUploader(Protocol):
    def upload(self, bucket: str, key: str, local_path: str) -> None: ...


class ArtifactPusher:
    """Deduplicated background uploads with a single join point."""

    def __init__(
        self,
        blob_client: BlobUploader | None,
        *,
        max_workers: int = 8,
        max_attempts: int = 10,
        base_delay: float = 1.0,
        dry_run: bool = False,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        """
        Initialize pusher.

        Args:
            blob_client: Blob storage client (unused in dry run)
            max_workers: Concurrent uploads
            max_attempts: Attempts per upload
            base_delay: Linear backoff step in seconds
            dry_run: Record pushes without uploading
            sleep: Sleep function for retry backoff (defaults to a wait that
                shutdown() interrupts)
        """
        if blob_client is None and not dry_run:
            raise ValueError("blob_client is required unless dry_run is set")

        self._client = blob_client
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._dry_run = dry_run
        self._cancelled = threading.Event()
        self._sleep = sleep or self._cancelled.wait
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="artifact-push"
        )
        # Insertion-ordered set; written only by the reader thread
        self._requested: dict[PushedFile, None] = {}
        self._futures: dict[Future, PushedFile] = {}

    @property
    def pushed_files(self) -> list[PushedFile]:
        """Distinct files requested so far, in request order."""
        return list(self._requested)

    def push(self, bucket: str, key: str, local_path: str | None = None) -> bool:
        """
        Request an upload unless the same (bucket, key) was already requested.

        Returns as soon as the upload is scheduled.

        Args:
            bucket: Destination bucket
            key: Object key
            local_path: File to upload (defaults to key)

        Returns:
            bool: True if an upload was scheduled, False for a duplicate
        """
        pushed = PushedFile(bucket=bucket, key=key)
        if pushed in self._requested:
            logger.debug("%s:push - Skipping duplicate push %s/%s", __name__, bucket, key)
            return False
        self._requested[pushed] = None

        if self._dry_run:
            logger.info("%s:push - Dry run, not uploading %s to %s", __name__, key, bucket)
            return True

        context = contextvars.copy_context()
        future = self._executor.submit(context.run, self._upload, pushed, local_path or key)
        self._futures[future] = pushed
        logger.info("%s:push - Scheduled upload of %s to %s", __name__, key, bucket)
        return True

    def _attempt(self, pushed: PushedFile, local_path: str) -> None:
        if self._cancelled.is_set():
            raise UploadCancelledError(f"upload of {pushed.key} abandoned on shutdown")
        self._client.upload(pushed.bucket, pushed.key, local_path)

    def _upload(self, pushed: PushedFile, local_path: str) -> None:
        try:
            retry_with_backoff(
                lambda: self._attempt(pushed, local_path),
                max_attempts=self._max_attempts,
                base_delay=self._base_delay,
                description=f"upload of {pushed.key} to {pushed.bucket}",
                sleep=self._sleep,
                give_up_on=(UploadCancelledError,),
                stop_event=self._cancelled,
            )
        except Exception as e:
            raise ArtifactUploadError(
                f"Upload failed after {self._max_attempts} attempts: {e}",
                bucket=pushed.bucket,
                key=pushed.key,
            ) from e
        logger.info("%s:_upload - Uploaded %s to %s", __name__, pushed.key, pushed.bucket)

    def join(self) -> list[ArtifactUploadError]:
        """
        Wait for every scheduled upload to finish.

        A failed upload never cancels the others; all failures are returned.

        Returns:
            list[ArtifactUploadError]: Failed uploads, in completion order
        """
        futures, self._futures = self._futures, {}
        errors: list[ArtifactUploadError] = []
        for future in as_completed(futures):
            try:
                future.result()
            except ArtifactUploadError as e:
                logger.error("%s:join - %s", __name__, e)
                errors.append(e)
        self._executor.shutdown(wait=True)
        return errors

    def shutdown(self, cancel_pending: bool = True, wait: bool = False) -> None:
        """
        Abandon the run's uploads.

        Running uploads stop at their next retry point (a backoff wait is cut
        short); no new attempt starts.

        Args:
            cancel_pending: Also cancel uploads that have not started
            wait: Block until the worker threads have exited
        """
        self._cancelled.set()
        self._executor.shutdown(wait=wait, cancel_futures=cancel_pending)
