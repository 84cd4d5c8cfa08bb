"""Tests for the SQLite job queue."""

import tempfile
import time
from pathlib import Path

import pytest

from doc_converter.models import ConversionJob
from doc_converter.queue import JobQueue


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test_jobs.db"
        yield str(db_path)


@pytest.fixture
def queue(temp_db):
    """Create a test queue."""
    return JobQueue(db_path=temp_db, table="test_jobs")


def make_job(download_id="job-1", urls=None):
    return ConversionJob(
        urls=urls or ["https://example.com/"],
        selector="article",
        download_id=download_id,
    )


def test_push_job(queue):
    """Test pushing a job to the queue."""
    job_id = queue.push(make_job(), metadata={"source": "test"})
    assert job_id > 0


def test_push_duplicate_download_id(queue):
    """Download IDs are unique."""
    queue.push(make_job("same"))

    with pytest.raises(ValueError):
        queue.push(make_job("same"))


def test_pop_job(queue):
    """Test popping a job from the queue."""
    queue.push(make_job(urls=["https://example.com/a", "https://example.com/b"]),
               metadata={"source": "test"})

    record = queue.pop()
    assert record is not None
    assert record.download_id == "job-1"
    assert record.job.urls == ["https://example.com/a", "https://example.com/b"]
    assert record.job.selector == "article"
    assert record.metadata["source"] == "test"
    assert record.attempts == 1


def test_pop_empty_queue(queue):
    """Test popping from an empty queue."""
    assert queue.pop() is None


def test_pop_hides_reserved_job(queue):
    """A reserved job is not handed out twice."""
    queue.push(make_job())

    assert queue.pop() is not None
    assert queue.pop() is None


def test_ack_job(queue):
    """Acknowledged jobs are completed and keep the new metadata."""
    queue.push(make_job())
    record = queue.pop()

    queue.ack(record.id, metadata={"summary": {"successful": 1}})

    job = queue.get_job("job-1")
    assert job["status"] == "completed"
    assert job["metadata"]["summary"] == {"successful": 1}
    assert len(queue.list_jobs(status="completed")) == 1


def test_nack_job(queue):
    """Test negative acknowledging a job."""
    queue.push(make_job())
    record = queue.pop()

    queue.nack(record.id)

    again = queue.pop()
    assert again is not None
    assert again.id == record.id
    assert again.attempts == 2


def test_fail_job(queue):
    """Failed jobs record the error."""
    queue.push(make_job())
    record = queue.pop()

    queue.fail(record.id, "Test error")

    job = queue.get_job("job-1")
    assert job["status"] == "failed"
    assert job["metadata"]["error"] == "Test error"
    assert "failed_at" in job["metadata"]


def test_visibility_timeout(queue):
    """A job whose visibility timeout expired can be popped again."""
    queue.push(make_job())

    record1 = queue.pop(visibility_timeout=1)
    assert record1 is not None
    assert queue.pop(visibility_timeout=1) is None

    time.sleep(2)

    record2 = queue.pop()
    assert record2 is not None
    assert record2.id == record1.id
    assert record2.attempts == 2


def test_get_job_unknown(queue):
    assert queue.get_job("missing") is None


def test_get_stats(queue):
    """Test getting queue statistics."""
    for i in range(5):
        queue.push(make_job(f"job-{i}"))

    record1 = queue.pop()
    queue.ack(record1.id)

    record2 = queue.pop()
    queue.fail(record2.id, "error")

    queue.pop()

    stats = queue.get_stats()
    assert stats["total"] == 5
    assert stats["completed"] == 1
    assert stats["failed"] == 1
    assert stats["processing"] == 1
    assert stats["pending"] == 2


def test_list_jobs(queue):
    """Jobs are listed newest first with pagination."""
    for i in range(3):
        queue.push(make_job(f"job-{i}"))

    jobs = queue.list_jobs()
    assert [j["download_id"] for j in jobs] == ["job-2", "job-1", "job-0"]
    assert jobs[0]["job"]["selector"] == "article"

    page = queue.list_jobs(limit=1, offset=1)
    assert [j["download_id"] for j in page] == ["job-1"]

    assert queue.list_jobs(status="failed") == []


def test_clear_completed(queue):
    """Old completed jobs are removed."""
    queue.push(make_job())
    record = queue.pop()
    queue.ack(record.id)

    assert queue.clear_completed(older_than_days=0) == 1
    assert queue.get_job("job-1") is None


def test_invalid_table_name(temp_db):
    with pytest.raises(ValueError):
        JobQueue(db_path=temp_db, table="jobs; DROP TABLE x")
