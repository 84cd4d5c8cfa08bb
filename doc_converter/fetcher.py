"""Size-bounded HTTP retrieval of page bodies."""

import logging
import time
from typing import Optional

import httpx

from .config import DEFAULT_TIMEOUT, DEFAULT_USER_AGENT, MAX_BODY_SIZE
from .errors import FetchError, SSRFBlockedError
from .ssrf import Resolver, is_public_url

logger = logging.getLogger(__name__)


def _redirect_guard(resolver: Resolver):
    """Request hook that refuses any hop to a non-public host."""
    def check(request: httpx.Request):
        url = str(request.url)
        if not is_public_url(url, resolver):
            raise SSRFBlockedError(url)

    return check


def create_client(
    timeout: float = DEFAULT_TIMEOUT,
    user_agent: str = DEFAULT_USER_AGENT,
    resolver: Optional[Resolver] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    """Create the HTTP client shared by every worker of a run.

    Args:
        timeout: Per-operation timeout in seconds
        user_agent: User-Agent header value
        resolver: When given, every request, redirect hops included, is
            checked against the SSRF guard with this resolver
        transport: Optional transport override

    Returns:
        Configured client
    """
    event_hooks = {}
    if resolver is not None:
        event_hooks["request"] = [_redirect_guard(resolver)]

    return httpx.Client(
        follow_redirects=True,
        timeout=timeout,
        event_hooks=event_hooks,
        transport=transport,
        headers={
            "User-Agent": user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        },
    )


class Fetcher:
    """Fetches page bodies, rejecting non-200 responses and oversized bodies.

    ``timeout`` bounds the whole exchange, body included; the client's own
    timeout only bounds each individual network operation.
    """

    def __init__(
        self,
        client: httpx.Client,
        max_body_size: int = MAX_BODY_SIZE,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.client = client
        self.max_body_size = max_body_size
        self.timeout = timeout

    def fetch(self, url: str) -> bytes:
        """Download the body of a URL.

        Args:
            url: URL to download

        Returns:
            Raw response body

        Raises:
            FetchError: On network failure, timeout, non-200 status or a body
                larger than ``max_body_size``
        """
        deadline = time.monotonic() + self.timeout
        try:
            with self.client.stream("GET", url) as response:
                if response.status_code != 200:
                    raise FetchError(
                        url,
                        f"failed to fetch URL {url}: HTTP status {response.status_code}",
                    )

                body = bytearray()
                for chunk in response.iter_bytes():
                    if time.monotonic() > deadline:
                        raise FetchError(url, f"failed to fetch URL {url}: request timed out")
                    body.extend(chunk)
                    if len(body) > self.max_body_size:
                        raise FetchError(
                            url,
                            f"failed to read body of {url}: "
                            f"response exceeds {self.max_body_size} bytes",
                        )
        except httpx.TimeoutException as e:
            raise FetchError(url, f"failed to fetch URL {url}: request timed out") from e
        except httpx.HTTPError as e:
            raise FetchError(url, f"failed to fetch URL {url}: {e}") from e

        logger.debug(f"Fetched {len(body)} bytes from {url}")
        return bytes(body)
