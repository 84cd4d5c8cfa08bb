"""Tests for the job API."""

import pytest
from fastapi.testclient import TestClient

from doc_converter import api
from doc_converter.queue import JobQueue


@pytest.fixture
def queue(tmp_path, monkeypatch):
    queue = JobQueue(db_path=str(tmp_path / "jobs.db"))
    monkeypatch.setattr(api, "_queue", queue)
    return queue


@pytest.fixture
def client(queue):
    return TestClient(api.app)


def test_create_job(client, queue):
    """Submitted jobs are queued under a new download ID."""
    response = client.post(
        "/api/jobs",
        json={"urls": ["https://example.com/a", "https://example.com/b"], "selector": "article"},
    )

    assert response.status_code == 202
    job_id = response.json()["job_id"]

    record = queue.pop()
    assert record.download_id == job_id
    assert record.job.urls == ["https://example.com/a", "https://example.com/b"]
    assert record.job.selector == "article"


@pytest.mark.parametrize("body", [
    {"urls": [], "selector": "article"},
    {"urls": ["https://example.com/"], "selector": ""},
    {"urls": ["not a url"], "selector": "article"},
    {"selector": "article"},
])
def test_create_job_invalid(client, body):
    assert client.post("/api/jobs", json=body).status_code == 422


def test_upload_csv(client, queue):
    """CSV rows become the URLs of one job."""
    csv_data = "url,note\nhttps://example.com/a,x\n,missing\nhttps://example.com/b,y\n"

    response = client.post(
        "/api/jobs/upload",
        params={"selector": "main"},
        files={"file": ("urls.csv", csv_data, "text/csv")},
    )

    assert response.status_code == 202
    data = response.json()
    assert data["added"] == 2
    assert data["errors"] == ["Row 2: Missing URL"]

    record = queue.pop()
    assert record.job.urls == ["https://example.com/a", "https://example.com/b"]
    assert record.job.selector == "main"


def test_upload_csv_without_url_column(client):
    response = client.post(
        "/api/jobs/upload",
        params={"selector": "main"},
        files={"file": ("urls.csv", "link\nhttps://example.com/\n", "text/csv")},
    )

    assert response.status_code == 400


def test_upload_requires_csv(client):
    response = client.post(
        "/api/jobs/upload",
        params={"selector": "main"},
        files={"file": ("urls.txt", "url\nhttps://example.com/\n", "text/plain")},
    )

    assert response.status_code == 400


def test_job_status_lifecycle(client, queue):
    """Status follows the job from pending to completed."""
    job_id = client.post(
        "/api/jobs", json={"urls": ["https://example.com/"], "selector": "main"}
    ).json()["job_id"]

    assert client.get(f"/api/jobs/{job_id}").json()["status"] == "pending"

    record = queue.pop()
    assert client.get(f"/api/jobs/{job_id}").json()["status"] == "processing"

    summary = {"total_urls": 1, "successful": 1, "failed": 0, "failed_urls": []}
    queue.ack(record.id, metadata={"summary": summary})

    data = client.get(f"/api/jobs/{job_id}").json()
    assert data["status"] == "completed"
    assert data["summary"] == summary
    assert data["error"] is None


def test_job_status_unknown(client):
    assert client.get("/api/jobs/unknown").status_code == 404


def test_download_not_completed(client):
    """Downloads are refused until the job completes."""
    job_id = client.post(
        "/api/jobs", json={"urls": ["https://example.com/"], "selector": "main"}
    ).json()["job_id"]

    assert client.get(f"/api/jobs/{job_id}/download").status_code == 409


def test_download_completed(client, queue, tmp_path):
    """Completed jobs serve their archive."""
    job_id = client.post(
        "/api/jobs", json={"urls": ["https://example.com/"], "selector": "main"}
    ).json()["job_id"]
    archive = tmp_path / f"{job_id}.zip"
    archive.write_bytes(b"PK\x05\x06" + b"\x00" * 18)

    record = queue.pop()
    queue.ack(record.id, metadata={"archive": str(archive)})

    response = client.get(f"/api/jobs/{job_id}/download")
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/zip"
    assert response.content == archive.read_bytes()


def test_list_jobs_and_stats(client):
    for i in range(3):
        client.post("/api/jobs", json={"urls": [f"https://example.com/{i}"], "selector": "main"})

    data = client.get("/api/jobs").json()
    assert data["count"] == 3

    assert client.get("/api/jobs", params={"status": "bogus"}).status_code == 400

    stats = client.get("/api/stats").json()
    assert stats == {"total": 3, "pending": 3, "processing": 0, "completed": 0, "failed": 0}
