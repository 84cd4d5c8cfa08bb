"""Worker that drains the job queue and runs conversions."""

import argparse
import logging
import shutil
import time
from pathlib import Path
from typing import Optional

from .config import DB_PATH, DOWNLOADS_DIR, ConverterConfig
from .converter import Converter
from .errors import ConverterSetupError
from .queue import JobQueue, JobRecord

logger = logging.getLogger(__name__)


def package_output(output_dir: Path, base_dir: Path, download_id: str) -> Path:
    """Zip a job's output directory into ``<base_dir>/<download_id>.zip``.

    Returns:
        Path to the archive
    """
    archive = shutil.make_archive(
        str(Path(base_dir) / download_id), "zip", root_dir=str(output_dir)
    )
    return Path(archive)


class JobWorker:
    """Pops conversion jobs and converts their URLs."""

    def __init__(
        self,
        queue: JobQueue,
        base_dir: str = DOWNLOADS_DIR,
        config: Optional[ConverterConfig] = None,
        poll_interval: int = 5,
        visibility_timeout: int = 300,
        converter_options: Optional[dict] = None,
    ):
        self.queue = queue
        self.base_dir = Path(base_dir)
        self.config = config or ConverterConfig()
        self.poll_interval = poll_interval
        self.visibility_timeout = visibility_timeout
        self.converter_options = converter_options or {}
        self.running = False

    def run(self):
        """Run the worker loop until stopped."""
        self.running = True
        logger.info("Worker started")
        try:
            while self.running:
                if not self.run_once():
                    time.sleep(self.poll_interval)
        except KeyboardInterrupt:
            logger.info("Worker stopped by user")
        finally:
            self.running = False

    def run_once(self) -> bool:
        """Process at most one job.

        Returns:
            True if a job was popped
        """
        record = self.queue.pop(visibility_timeout=self.visibility_timeout)
        if record is None:
            return False
        self.process_job(record)
        return True

    def process_job(self, record: JobRecord):
        """Convert every URL of a job and package the output.

        Args:
            record: Reserved job
        """
        job = record.job
        logger.info(f"Processing job {job.download_id} ({len(job.urls)} URLs)")

        try:
            converter = Converter.for_job(
                job.download_id,
                base_dir=str(self.base_dir),
                config=self.config,
                **self.converter_options,
            )
        except ConverterSetupError as e:
            logger.error(f"Failed to create converter for job {job.download_id}: {e}")
            self.queue.fail(record.id, str(e))
            return

        try:
            with converter:
                run = converter.convert(job.urls, job.selector)
                for result in run:
                    if not result.is_success:
                        logger.warning(f"Job {job.download_id}: {result.url}: {result.error}")
                summary = run.summary

            archive = package_output(converter.output_dir, self.base_dir, job.download_id)

            metadata = dict(record.metadata)
            metadata["summary"] = summary.model_dump()
            metadata["archive"] = str(archive)
            metadata["completed_at"] = time.time()
            self.queue.ack(record.id, metadata=metadata)

            logger.info(
                f"Conversion finished for job {job.download_id}. "
                f"Successful: {summary.successful}, Failed: {summary.failed}"
            )

        except Exception as e:
            logger.error(f"Error processing job {job.download_id}: {e}", exc_info=True)
            self.queue.fail(record.id, str(e))

    def stop(self):
        """Stop the worker."""
        self.running = False


def main():
    """Main entry point for the worker."""
    logging.basicConfig(level=logging.INFO)

    parser = argparse.ArgumentParser(description="Worker for conversion jobs")
    parser.add_argument(
        "--db",
        default=DB_PATH,
        help="Path to SQLite database"
    )
    parser.add_argument(
        "--downloads-dir",
        default=DOWNLOADS_DIR,
        help="Directory for per-job output and archives"
    )
    parser.add_argument(
        "--poll-interval",
        type=int,
        default=5,
        help="Polling interval in seconds"
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Process at most one job and exit"
    )

    args = parser.parse_args()

    queue = JobQueue(db_path=args.db)
    worker = JobWorker(
        queue,
        base_dir=args.downloads_dir,
        config=ConverterConfig.from_env(),
        poll_interval=args.poll_interval,
    )

    logger.info(f"Starting worker with jobs from {args.db}")
    if args.once:
        worker.run_once()
    else:
        worker.run()


if __name__ == "__main__":
    main()
