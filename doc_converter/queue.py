"""SQLite-backed queue of conversion jobs."""

import json
import sqlite3
import time
from typing import Any, Optional

from .models import ConversionJob

STATUSES = ("pending", "processing", "completed", "failed")


class JobRecord:
    """A reserved job popped from the queue."""

    def __init__(
        self,
        id: int,
        job: ConversionJob,
        metadata: Optional[dict[str, Any]] = None,
        attempts: int = 0,
        timestamp: Optional[float] = None,
    ):
        self.id = id
        self.job = job
        self.metadata = metadata or {}
        self.attempts = attempts
        self.timestamp = timestamp or time.time()

    @property
    def download_id(self) -> str:
        return self.job.download_id


class JobQueue:
    """Conversion jobs keyed by download ID, with a visibility timeout."""

    def __init__(self, db_path: str = "jobs.db", table: str = "conversion_jobs"):
        if not table.isidentifier():
            raise ValueError(f"Invalid table name: {table!r}")
        self.db_path = db_path
        self.table = table
        self._init_db()

    def _init_db(self):
        """Initialize the database schema."""
        conn = self._get_connection()
        try:
            conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {self.table} (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    download_id TEXT NOT NULL UNIQUE,
                    available_at INTEGER NOT NULL,
                    payload TEXT NOT NULL,
                    metadata TEXT NOT NULL,
                    reserved INTEGER NOT NULL DEFAULT 0,
                    attempts INTEGER NOT NULL DEFAULT 0,
                    created_at REAL NOT NULL,
                    status TEXT NOT NULL DEFAULT 'pending'
                )
            """)

            conn.execute(f"""
                CREATE INDEX IF NOT EXISTS idx_{self.table}_available
                ON {self.table}(available_at, reserved, id)
            """)

            conn.execute(f"""
                CREATE INDEX IF NOT EXISTS idx_{self.table}_status
                ON {self.table}(status)
            """)

            conn.commit()
        finally:
            conn.close()

    def _get_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=30.0)
        conn.row_factory = sqlite3.Row
        return conn

    def push(self, job: ConversionJob, metadata: Optional[dict[str, Any]] = None) -> int:
        """Enqueue a job.

        Args:
            job: Job to enqueue
            metadata: Initial job metadata

        Returns:
            Row ID of the job

        Raises:
            ValueError: If a job with the same download ID already exists
        """
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                f"""
                INSERT INTO {self.table}
                (download_id, available_at, payload, metadata, created_at, status)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    job.download_id,
                    int(time.time()),
                    job.model_dump_json(),
                    json.dumps(metadata or {}),
                    time.time(),
                    "pending",
                ),
            )
            conn.commit()
            return cursor.lastrowid
        except sqlite3.IntegrityError as e:
            raise ValueError(f"Job {job.download_id} already exists") from e
        finally:
            conn.close()

    def pop(self, visibility_timeout: int = 300) -> Optional[JobRecord]:
        """Reserve the oldest available job.

        A job left in ``processing`` longer than its visibility timeout becomes
        available again.

        Args:
            visibility_timeout: Seconds to hide the job from other consumers

        Returns:
            JobRecord if available, None otherwise
        """
        conn = self._get_connection()
        try:
            now = int(time.time())

            row = conn.execute(
                f"""
                SELECT id, payload, metadata, attempts, created_at FROM {self.table}
                WHERE (reserved = 0 AND status = 'pending')
                   OR (reserved = 1 AND status = 'processing' AND available_at <= ?)
                ORDER BY id
                LIMIT 1
                """,
                (now,),
            ).fetchone()
            if not row:
                return None

            cursor = conn.execute(
                f"""
                UPDATE {self.table}
                SET reserved = 1,
                    attempts = attempts + 1,
                    available_at = ?,
                    status = 'processing'
                WHERE id = ?
                  AND (
                    (reserved = 0 AND status = 'pending')
                    OR (reserved = 1 AND status = 'processing' AND available_at <= ?)
                  )
                """,
                (now + visibility_timeout, row["id"], now),
            )
            conn.commit()

            if cursor.rowcount == 0:
                # Another consumer reserved it first
                return None

            return JobRecord(
                id=row["id"],
                job=ConversionJob.model_validate_json(row["payload"]),
                metadata=json.loads(row["metadata"]),
                attempts=row["attempts"] + 1,
                timestamp=row["created_at"],
            )
        finally:
            conn.close()

    def ack(self, job_id: int, metadata: Optional[dict[str, Any]] = None):
        """Mark a job completed, optionally replacing its metadata."""
        conn = self._get_connection()
        try:
            if metadata is None:
                conn.execute(
                    f"UPDATE {self.table} SET status = 'completed', reserved = 0 WHERE id = ?",
                    (job_id,),
                )
            else:
                conn.execute(
                    f"""
                    UPDATE {self.table}
                    SET status = 'completed', reserved = 0, metadata = ?
                    WHERE id = ?
                    """,
                    (json.dumps(metadata, default=str), job_id),
                )
            conn.commit()
        finally:
            conn.close()

    def nack(self, job_id: int):
        """Return a job to the queue for another attempt."""
        conn = self._get_connection()
        try:
            conn.execute(
                f"""
                UPDATE {self.table}
                SET reserved = 0,
                    available_at = ?,
                    status = 'pending'
                WHERE id = ?
                """,
                (int(time.time()), job_id),
            )
            conn.commit()
        finally:
            conn.close()

    def fail(self, job_id: int, error: str = ""):
        """Mark a job failed and record the error in its metadata."""
        conn = self._get_connection()
        try:
            row = conn.execute(
                f"SELECT metadata FROM {self.table} WHERE id = ?",
                (job_id,),
            ).fetchone()
            if row:
                metadata = json.loads(row["metadata"])
                metadata["error"] = error
                metadata["failed_at"] = time.time()

                conn.execute(
                    f"""
                    UPDATE {self.table}
                    SET status = 'failed', reserved = 0, metadata = ?
                    WHERE id = ?
                    """,
                    (json.dumps(metadata), job_id),
                )
                conn.commit()
        finally:
            conn.close()

    def _row_to_dict(self, row: sqlite3.Row) -> dict[str, Any]:
        return {
            "id": row["id"],
            "download_id": row["download_id"],
            "job": json.loads(row["payload"]),
            "metadata": json.loads(row["metadata"]),
            "timestamp": row["created_at"],
            "status": row["status"],
            "attempts": row["attempts"],
        }

    def get_job(self, download_id: str) -> Optional[dict[str, Any]]:
        """Look up a job by its download ID."""
        conn = self._get_connection()
        try:
            row = conn.execute(
                f"""
                SELECT id, download_id, payload, metadata, created_at, status, attempts
                FROM {self.table}
                WHERE download_id = ?
                """,
                (download_id,),
            ).fetchone()
            return self._row_to_dict(row) if row else None
        finally:
            conn.close()

    def list_jobs(
        self,
        status: Optional[str] = None,
        limit: int = 100,
        offset: int = 0
    ) -> list[dict[str, Any]]:
        """List jobs, newest first.

        Args:
            status: Filter by status (pending, processing, completed, failed)
            limit: Maximum number of jobs to return
            offset: Offset for pagination
        """
        conn = self._get_connection()
        try:
            query = f"""
                SELECT id, download_id, payload, metadata, created_at, status, attempts
                FROM {self.table}
            """
            params: tuple = ()
            if status:
                query += " WHERE status = ?"
                params = (status,)
            query += " ORDER BY id DESC LIMIT ? OFFSET ?"

            cursor = conn.execute(query, params + (limit, offset))
            return [self._row_to_dict(row) for row in cursor]
        finally:
            conn.close()

    def get_stats(self) -> dict[str, int]:
        """Count jobs per status."""
        conn = self._get_connection()
        try:
            stats = {status: 0 for status in STATUSES}
            cursor = conn.execute(
                f"SELECT status, COUNT(*) AS count FROM {self.table} GROUP BY status"
            )
            for row in cursor:
                stats[row["status"]] = row["count"]
            stats["total"] = sum(stats[status] for status in STATUSES)
            return stats
        finally:
            conn.close()

    def clear_completed(self, older_than_days: int = 7) -> int:
        """Delete completed jobs older than the given age; returns the count."""
        conn = self._get_connection()
        try:
            cutoff = time.time() - (older_than_days * 24 * 60 * 60)
            cursor = conn.execute(
                f"""
                DELETE FROM {self.table}
                WHERE status = 'completed' AND created_at < ?
                """,
                (cutoff,),
            )
            conn.commit()
            return cursor.rowcount
        finally:
            conn.close()
