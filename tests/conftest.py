"""
Shared test fixtures and configuration for entire test suite.

Provides: Fake queue/blob clients, fake generator process, settings factory,
temp file cleanup
Dependencies: pytest, job_breaker
System role: Test infrastructure and fixture management
"""

import io
import os
import tempfile
import threading
from pathlib import Path
import uuid

import pytest

from job_breaker.configs.breaker import BreakerSettings
from job_breaker.configs.settings import get_settings
from job_breaker.core.exceptions import QueueNotFoundError
from job_breaker.core.models import QueueHandle


class FakeQueueClient:
    """In-memory queue service recording (queue name, body) per submission."""

    def __init__(self, known_queues=None, failures=0):
        self.known_queues = set(known_queues) if known_queues is not None else None
        self.failures_remaining = failures
        self.submissions = []
        self.attributes = []
        self.resolved = []
        self.submit_calls = 0

    def resolve(self, name):
        self.resolved.append(name)
        if self.known_queues is not None and name not in self.known_queues:
            raise QueueNotFoundError(name)
        return QueueHandle(name=name, url=f"https://sqs.test/{name}")

    def submit(self, queue, body, attributes=None):
        self.submit_calls += 1
        if self.failures_remaining:
            self.failures_remaining -= 1
            raise ConnectionError("transient queue failure")
        self.submissions.append((queue.name, body))
        self.attributes.append(attributes)
        return f"msg-{len(self.submissions)}"

    def bodies(self, queue_name=None):
        return [body for name, body in self.submissions if queue_name in (None, name)]


class FakeBlobClient:
    """Thread-safe in-memory blob storage with per-key failure injection."""

    def __init__(self, failing_keys=()):
        self.failing_keys = set(failing_keys)
        self.uploads = []
        self.attempts = {}
        self._lock = threading.Lock()

    def upload(self, bucket, key, local_path):
        with self._lock:
            self.attempts[(bucket, key)] = self.attempts.get((bucket, key), 0) + 1
            if key in self.failing_keys:
                raise ConnectionError(f"cannot upload {key}")
            self.uploads.append((bucket, key, local_path))


class BlockingBlobClient(FakeBlobClient):
    """Blob client whose uploads wait until release is set."""

    def __init__(self, failing_keys=()):
        super().__init__(failing_keys)
        self.started = threading.Event()
        self.release = threading.Event()

    def upload(self, bucket, key, local_path):
        self.started.set()
        if not self.release.wait(timeout=10):
            raise TimeoutError("upload was never released")
        super().upload(bucket, key, local_path)


class FakeGeneratorProcess:
    """Generator stand-in yielding canned stdout lines."""

    def __init__(self, lines, exit_status=0):
        self._lines = list(lines)
        self.exit_status = exit_status
        self.lines_consumed = 0
        self.terminated = False
        self.waited = False

    def lines(self):
        for line in self._lines:
            self.lines_consumed += 1
            yield line

    def wait(self):
        self.waited = True
        return self.exit_status

    def terminate(self, timeout=5.0):
        self.terminated = True


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """
    Keep JOB_BREAKER_* / AWS_* variables and any .env file out of tests.

    Yields:
        None
    """
    for name in list(os.environ):
        if name.startswith(("JOB_BREAKER_", "AWS_")):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def queue_client():
    """Create a fake queue client accepting any queue name."""
    return FakeQueueClient()


@pytest.fixture
def blob_client():
    """Create a fake blob client where every upload succeeds."""
    return FakeBlobClient()


@pytest.fixture
def blocking_blob_client():
    """
    Create a blob client that holds every upload until released.

    Yields:
        BlockingBlobClient: Released on teardown so no worker stays blocked
    """
    client = BlockingBlobClient()
    yield client
    client.release.set()


@pytest.fixture
def output():
    """Capture pass-through and dry-run output."""
    return io.StringIO()


@pytest.fixture
def make_settings():
    """
    Create BreakerSettings with test-friendly defaults.

    Returns:
        Callable: Factory accepting BreakerSettings field overrides
    """

    def _make(**overrides):
        values = {"queue_name": "work", "retry_base_delay": 0.0, "max_attempts": 3}
        values.update(overrides)
        return BreakerSettings(**values)

    return _make


@pytest.fixture
def temp_file():
    """
    Create a temporary file for testing file pushes.

    Yields:
        Path: Path to temporary file
    """
    with tempfile.NamedTemporaryFile(suffix=".txt", delete=False) as f:
        temp_path = Path(f.name)
        f.write(b"test content")

    yield temp_path

    # Cleanup
    if temp_path.exists():
        temp_path.unlink()


@pytest.fixture
def job_id():
    """Generate a test job ID."""
    return str(uuid.uuid4())


@pytest.fixture
def make_queue_client():
    """Factory for fake queue clients with known queues or injected failures."""
    return FakeQueueClient


@pytest.fixture
def make_blob_client():
    """Factory for fake blob clients with failing keys."""
    return FakeBlobClient


@pytest.fixture
def make_generator():
    """Factory for fake generator processes from canned lines."""
    return FakeGeneratorProcess
