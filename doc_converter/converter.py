"""Batch conversion of web pages into Markdown documents."""

import logging
import socket
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

import httpx

from .config import DOWNLOADS_DIR, ConverterConfig
from .errors import ConversionError, ConverterSetupError, SSRFBlockedError
from .extract import extract_content, extract_metadata, page_title, parse_document
from .fetcher import Fetcher, create_client
from .frontmatter import compose_document
from .markdown import html_to_markdown
from .models import ConversionResult, ConversionSummary
from .sink import document_filename, write_document
from .ssrf import Resolver, is_public_url

logger = logging.getLogger(__name__)


def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class Converter:
    """Converts batches of URLs into Markdown files in one output directory."""

    def __init__(
        self,
        output_dir: str,
        download_id: Optional[str] = None,
        config: Optional[ConverterConfig] = None,
        client: Optional[httpx.Client] = None,
        resolver: Resolver = socket.getaddrinfo,
    ):
        if not output_dir:
            raise ConverterSetupError("output directory must be specified")

        self.output_dir = Path(output_dir)
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConverterSetupError(
                f"failed to create output directory {self.output_dir}: {e}"
            ) from e

        self.download_id = download_id
        self.config = config or ConverterConfig()
        self.resolver = resolver

        self._owns_client = client is None
        self.client = client or create_client(
            timeout=self.config.timeout,
            user_agent=self.config.user_agent,
            resolver=resolver,
        )
        self.fetcher = Fetcher(
            self.client,
            max_body_size=self.config.max_body_size,
            timeout=self.config.timeout,
        )

    @classmethod
    def for_job(
        cls, download_id: str, base_dir: str = DOWNLOADS_DIR, **kwargs
    ) -> "Converter":
        """Create a converter writing to ``<base_dir>/<download_id>``."""
        if not download_id:
            raise ConverterSetupError(
                "download_id cannot be empty for a job-based conversion"
            )
        return cls(str(Path(base_dir) / download_id), download_id=download_id, **kwargs)

    @classmethod
    def for_cli(cls, output_dir: str, **kwargs) -> "Converter":
        """Create a converter writing to a user-supplied directory."""
        if not output_dir:
            raise ConverterSetupError(
                "output directory must be specified for CLI conversion"
            )
        return cls(output_dir, **kwargs)

    def close(self):
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> "Converter":
        return self

    def __exit__(self, *exc_info):
        self.close()

    def convert(self, urls: list[str], selector: str) -> "ConversionRun":
        """Start converting ``urls``; iterate the returned run for results."""
        return ConversionRun(self, list(urls), selector)

    def convert_all(
        self, urls: list[str], selector: str
    ) -> tuple[list[ConversionResult], ConversionSummary]:
        """Convert ``urls`` and wait for every result and the summary."""
        run = self.convert(urls, selector)
        results = list(run)
        return results, run.summary

    def convert_url(self, url: str, selector: str) -> ConversionResult:
        """Convert a single URL; failures are returned, never raised.

        Args:
            url: Page to convert
            selector: CSS selector of the content to keep

        Returns:
            ConversionResult for the URL
        """
        logger.info(f"Processing: {url}")

        try:
            if not is_public_url(url, self.resolver):
                raise SSRFBlockedError(url)

            body = self.fetcher.fetch(url)
            document = parse_document(body, url)
            fragment = extract_content(document, selector, url)

            metadata = extract_metadata(document, url)
            metadata["retrieved_at"] = _timestamp()

            markdown = html_to_markdown(fragment, url)

            content = compose_document(metadata, markdown, url)
            filename = document_filename(page_title(document), url)
            write_document(self.output_dir, filename, content, url)

        except ConversionError as e:
            logger.error(f"Failed to process {url}: {e}")
            return ConversionResult.failure(url, e)
        except Exception as e:
            logger.error(f"Unexpected error processing {url}: {e}", exc_info=True)
            return ConversionResult(
                url=url,
                is_success=False,
                error=str(e) or type(e).__name__,
                error_kind="internal_error",
            )

        return ConversionResult.success(url, filename, content)


class ConversionRun:
    """Result stream of one conversion run.

    Iterating yields one ``ConversionResult`` per URL in completion order.
    ``summary`` is available once the stream has been exhausted.
    """

    def __init__(self, converter: Converter, urls: list[str], selector: str):
        self.converter = converter
        self.urls = urls
        self.selector = selector
        self._summary: Optional[ConversionSummary] = None
        self._started = False

    def __iter__(self) -> Iterator[ConversionResult]:
        if self._started:
            raise RuntimeError("a conversion run can only be iterated once")
        self._started = True
        return self._results()

    @property
    def summary(self) -> ConversionSummary:
        if self._summary is None:
            raise RuntimeError(
                "summary is only available after every result has been consumed"
            )
        return self._summary

    def _results(self) -> Iterator[ConversionResult]:
        start = time.perf_counter()
        successful = 0
        failed_urls = []

        if self.urls:
            max_workers = min(self.converter.config.max_workers, len(self.urls))
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                futures = [
                    executor.submit(self.converter.convert_url, url, self.selector)
                    for url in self.urls
                ]
                for future in as_completed(futures):
                    result = future.result()
                    if result.is_success:
                        successful += 1
                    else:
                        failed_urls.append(result.url)
                    yield result

        elapsed = time.perf_counter() - start
        self._summary = ConversionSummary(
            total_urls=len(self.urls),
            successful=successful,
            failed=len(failed_urls),
            failed_urls=failed_urls,
            processing_time=f"{elapsed:.3f}s",
            download_id=self.converter.download_id,
        )
        logger.info(
            f"Conversion finished: {successful} succeeded, {len(failed_urls)} failed "
            f"in {elapsed:.2f}s"
        )
