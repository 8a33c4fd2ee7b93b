"""
Unit tests for TaskEnqueuer.

Tests preamble wrapping, ordering, inline and collection replication and
retry behavior.
Dependencies: pytest, PyYAML, job_breaker.core.task_enqueuer
System role: Message production validation
"""

import pytest
import yaml

from job_breaker.configs.breaker import RepeatMode
from job_breaker.core.exceptions import (
    EnqueueError,
    ReplicationConflictError,
    TaskFormatError,
)
from job_breaker.core.models import PushedFile
from job_breaker.core.queue_router import QueueRouter
from job_breaker.core.task_enqueuer import TaskEnqueuer


def _preamble(body):
    return yaml.safe_load(body.partition("\n...\n")[0])


def _task_body(body):
    return body.partition("\n...\n")[2]


@pytest.fixture
def make_enqueuer(queue_client):
    def _make(client=None, **kwargs):
        client = client or queue_client
        router = QueueRouter(client, "work")
        options = {
            "base_preamble": {},
            "result_queue_name": "results",
            "job_id": "job-1",
            "max_attempts": 3,
            "base_delay": 0.0,
            "sleep": lambda _: None,
        }
        options.update(kwargs)
        return TaskEnqueuer(client, router, **options), router

    return _make


class TestEnqueue:
    """Test suite for TaskEnqueuer.enqueue."""

    def test_tasks_sent_in_order_with_preamble(self, make_enqueuer, queue_client):
        """
        Test every task is wrapped and submitted in source order.

        Arrange: Enqueuer without replication
        Act: Enqueue three tasks
        Assert: Three messages in order, each with the run preamble
        """
        # Arrange
        enqueuer, _ = make_enqueuer()

        # Act
        for n in range(3):
            enqueuer.enqueue(f'{{"n": {n}}}')

        # Assert
        bodies = queue_client.bodies("work")
        assert [_task_body(b) for b in bodies] == ['{"n": 0}', '{"n": 1}', '{"n": 2}']
        assert all(_preamble(b) == {"EZQ": {"result_queue_name": "results"}} for b in bodies)
        assert enqueuer.task_count == 3
        assert enqueuer.message_count == 3

    def test_job_id_attribute(self, make_enqueuer, queue_client):
        """Test submissions carry the job id attribute."""
        enqueuer, _ = make_enqueuer()

        enqueuer.enqueue("task")

        assert queue_client.attributes == [{"job_id": "job-1"}]

    def test_pushed_files_listed(self, make_enqueuer, queue_client):
        """Test files pushed so far appear in the preamble."""
        files = []
        enqueuer, _ = make_enqueuer(pushed_files=lambda: files)

        enqueuer.enqueue("before")
        files.append(PushedFile(bucket="b", key="in.csv"))
        enqueuer.enqueue("after")

        first, second = queue_client.bodies()
        assert "get_s3_files" not in _preamble(first)["EZQ"]
        assert _preamble(second)["EZQ"]["get_s3_files"] == [{"bucket": "b", "key": "in.csv"}]

    def test_task_overrides_do_not_leak(self, make_enqueuer, queue_client):
        """
        Test one task's embedded preamble never affects the next task.

        Arrange: Enqueuer with a base preamble
        Act: Enqueue a task overriding the priority, then a plain task
        Assert: Only the first message carries the override
        """
        # Arrange
        enqueuer, _ = make_enqueuer(base_preamble={"EZQ": {"priority": 1}})

        # Act
        enqueuer.enqueue('{"EZQ": {"priority": 9}, "n": 1}')
        enqueuer.enqueue('{"n": 2}')

        # Assert
        first, second = queue_client.bodies()
        assert _preamble(first)["EZQ"]["priority"] == 9
        assert _preamble(second)["EZQ"]["priority"] == 1

    def test_follows_router(self, make_enqueuer, queue_client):
        """Test each task goes to the queue active when it is enqueued."""
        enqueuer, router = make_enqueuer()

        enqueuer.enqueue("a")
        router.set_queue("other")
        enqueuer.enqueue("b")

        assert [name for name, _ in queue_client.submissions] == ["work", "other"]

    def test_transient_failures_retried(self, make_enqueuer, make_queue_client):
        """Test a submission succeeding within the budget is sent once."""
        client = make_queue_client(failures=2)
        enqueuer, _ = make_enqueuer(client=client)

        enqueuer.enqueue("task")

        assert client.submit_calls == 3
        assert len(client.submissions) == 1

    def test_exhausted_retries_raise(self, make_enqueuer, make_queue_client):
        """Test EnqueueError once every attempt failed."""
        client = make_queue_client(failures=3)
        enqueuer, _ = make_enqueuer(client=client)

        with pytest.raises(EnqueueError) as exc_info:
            enqueuer.enqueue("task")
        assert exc_info.value.details["queue_name"] == "work"
        assert enqueuer.task_count == 0

    def test_structured_mode_rejects_prose(self, make_enqueuer, queue_client):
        """Test a prose line is refused before anything is submitted."""
        enqueuer, _ = make_enqueuer()

        with pytest.raises(TaskFormatError):
            enqueuer.enqueue("Segmentation fault (core dumped)", require_structured=True)

        assert queue_client.submit_calls == 0
        assert enqueuer.task_count == 0


class TestReplication:
    """Test suite for inline and collection replication."""

    def test_inline_copies_are_contiguous(self, make_enqueuer, queue_client):
        """
        Test inline replication sends N extra copies right after each task.

        Arrange: Inline mode with repeat_count=2
        Act: Enqueue three tasks
        Assert: Nine messages grouped per task
        """
        # Arrange
        enqueuer, _ = make_enqueuer(repeat_count=2, repeat_mode=RepeatMode.INLINE)

        # Act
        for name in ("t1", "t2", "t3"):
            enqueuer.enqueue(name)

        # Assert
        bodies = [_task_body(b) for b in queue_client.bodies()]
        assert bodies == ["t1"] * 3 + ["t2"] * 3 + ["t3"] * 3
        assert enqueuer.message_count == 9
        assert enqueuer.task_count == 3
        assert enqueuer.replay() == 0

    def test_collection_replays_whole_set(self, make_enqueuer, queue_client):
        """
        Test collection replication repeats the full ordered set.

        Arrange: Collection mode with repeat_count=1
        Act: Enqueue three tasks, then replay
        Assert: Six messages, the set repeated in order
        """
        # Arrange
        enqueuer, _ = make_enqueuer(repeat_count=1, repeat_mode=RepeatMode.COLLECTION)

        # Act
        for name in ("t1", "t2", "t3"):
            enqueuer.enqueue(name)
        replicated = enqueuer.replay()

        # Assert
        bodies = [_task_body(b) for b in queue_client.bodies()]
        assert bodies == ["t1", "t2", "t3", "t1", "t2", "t3"]
        assert replicated == 3
        assert len(enqueuer.sent_messages) == 3

    def test_collection_replay_identical_bodies(self, make_enqueuer, queue_client):
        """Test replayed messages are byte-identical to the originals."""
        enqueuer, _ = make_enqueuer(repeat_count=2, repeat_mode=RepeatMode.COLLECTION)

        enqueuer.enqueue('{"n": 1}')
        enqueuer.replay()

        assert len(set(queue_client.bodies())) == 1
        assert len(queue_client.bodies()) == 3

    def test_collection_pins_routing(self, make_enqueuer):
        """Test a queue change after the first collection message is refused."""
        enqueuer, router = make_enqueuer(repeat_count=1, repeat_mode=RepeatMode.COLLECTION)

        enqueuer.enqueue("t1")

        with pytest.raises(ReplicationConflictError):
            router.set_queue("other")

    def test_collection_allows_change_before_first_send(self, make_enqueuer, queue_client):
        """Test switching queues before any message is sent is fine."""
        enqueuer, router = make_enqueuer(repeat_count=1, repeat_mode=RepeatMode.COLLECTION)

        router.set_queue("other")
        enqueuer.enqueue("t1")
        enqueuer.replay()

        assert [name for name, _ in queue_client.submissions] == ["other", "other"]

    def test_zero_repeat_sends_once(self, make_enqueuer, queue_client):
        """Test repeat_count=0 never replicates, whatever the mode."""
        enqueuer, router = make_enqueuer(repeat_count=0, repeat_mode=RepeatMode.COLLECTION)

        enqueuer.enqueue("t1")
        router.set_queue("other")

        assert enqueuer.replay() == 0
        assert len(queue_client.submissions) == 1
