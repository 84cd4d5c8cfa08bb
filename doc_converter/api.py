"""FastAPI service for submitting conversion jobs and downloading results."""

import csv
import io
import logging
import os
import uuid
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.responses import FileResponse

from .config import DB_PATH, DOWNLOADS_DIR
from .models import ConversionJob, JobCreate, JobStats
from .queue import STATUSES, JobQueue

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Doc Converter API",
    description="API for converting web pages into Markdown documents",
    version="1.0.0",
)

_queue: Optional[JobQueue] = None


def get_queue() -> JobQueue:
    """Get or create the job queue."""
    global _queue
    if _queue is None:
        _queue = JobQueue(db_path=os.environ.get("DOC_CONVERTER_DB", DB_PATH))
    return _queue


def _enqueue(urls: list[str], selector: str, source: str) -> str:
    download_id = str(uuid.uuid4())
    job = ConversionJob(urls=urls, selector=selector, download_id=download_id)
    get_queue().push(job, metadata={"source": source})
    logger.info(f"Job {download_id} queued with {len(urls)} URLs")
    return download_id


def _get_job_or_404(job_id: str) -> dict:
    job = get_queue().get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Job {job_id} not found")
    return job


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Doc Converter API",
        "version": "1.0.0",
        "endpoints": {
            "create": "/api/jobs",
            "upload": "/api/jobs/upload?selector=<selector>",
            "jobs": "/api/jobs",
            "status": "/api/jobs/<job_id>",
            "download": "/api/jobs/<job_id>/download",
            "stats": "/api/stats",
        }
    }


@app.post("/api/jobs", status_code=202)
async def create_job(request: JobCreate):
    """Queue a conversion job.

    Args:
        request: JobCreate with urls and selector
    """
    job_id = _enqueue([str(url) for url in request.urls], request.selector, "api")
    return {"job_id": job_id, "status": "pending"}


@app.post("/api/jobs/upload", status_code=202)
async def upload_csv(selector: str, file: UploadFile = File(...)):
    """Queue a conversion job from a CSV file with a 'url' column.

    Args:
        selector: CSS selector shared by every URL
        file: CSV file to upload
    """
    if not selector.strip():
        raise HTTPException(status_code=400, detail="Selector must not be empty")

    if not file.filename or not file.filename.endswith(".csv"):
        raise HTTPException(status_code=400, detail="File must be a CSV")

    contents = await file.read()
    try:
        reader = csv.DictReader(io.StringIO(contents.decode("utf-8")))
        fieldnames = reader.fieldnames or []
        rows = list(reader)
    except (UnicodeDecodeError, csv.Error) as e:
        raise HTTPException(status_code=400, detail=f"Invalid CSV: {e}") from e

    if "url" not in fieldnames:
        raise HTTPException(status_code=400, detail="CSV must have a 'url' column")

    urls = []
    errors = []
    for i, row in enumerate(rows, start=1):
        url = (row.get("url") or "").strip()
        if not url:
            errors.append(f"Row {i}: Missing URL")
            continue
        urls.append(url)

    if not urls:
        raise HTTPException(status_code=400, detail="CSV contains no URLs")

    job_id = _enqueue(urls, selector, "csv_upload")
    logger.info(f"CSV upload queued job {job_id}: {len(urls)} URLs, {len(errors)} errors")
    return {
        "job_id": job_id,
        "status": "pending",
        "added": len(urls),
        "errors": errors,
    }


@app.get("/api/jobs")
async def list_jobs(status: Optional[str] = None, limit: int = 100, offset: int = 0):
    """List jobs, newest first.

    Args:
        status: Filter by status (pending, processing, completed, failed)
        limit: Maximum number of jobs to return
        offset: Offset for pagination
    """
    if status and status not in STATUSES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid status. Must be one of: {', '.join(STATUSES)}"
        )

    jobs = get_queue().list_jobs(status=status, limit=limit, offset=offset)
    return {
        "jobs": jobs,
        "count": len(jobs),
        "limit": limit,
        "offset": offset,
    }


@app.get("/api/jobs/{job_id}")
async def get_job_status(job_id: str):
    """Get the status of a job and, once finished, its summary."""
    job = _get_job_or_404(job_id)
    return {
        "job_id": job_id,
        "status": job["status"],
        "attempts": job["attempts"],
        "summary": job["metadata"].get("summary"),
        "error": job["metadata"].get("error"),
    }


@app.get("/api/jobs/{job_id}/download")
async def download_job(job_id: str):
    """Download the zip archive of a completed job."""
    job = _get_job_or_404(job_id)
    if job["status"] != "completed":
        raise HTTPException(
            status_code=409,
            detail=f"Job {job_id} is {job['status']}, not completed"
        )

    archive = job["metadata"].get("archive")
    if not archive or not Path(archive).exists():
        raise HTTPException(status_code=404, detail=f"Archive for job {job_id} not found")

    return FileResponse(
        archive, media_type="application/zip", filename=f"{job_id}.zip"
    )


@app.get("/api/stats", response_model=JobStats)
async def get_stats():
    """Get job queue statistics."""
    return JobStats(**get_queue().get_stats())


@app.delete("/api/jobs/completed")
async def clear_completed(older_than_days: int = 7):
    """Clear completed jobs older than specified days."""
    removed = get_queue().clear_completed(older_than_days=older_than_days)
    return {"removed": removed}


def main():
    """Run the API server."""
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
