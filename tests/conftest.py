"""Shared fixtures: a fake DNS resolver, an in-memory HTTP server and a document splitter."""

import socket

import httpx
import pytest
import yaml


class FakeResolver:
    """``socket.getaddrinfo`` stand-in backed by a hostname -> addresses map."""

    def __init__(self, hosts: dict[str, list[str]]):
        self.hosts = hosts
        self.lookups = []

    def __call__(self, host, port, *args, **kwargs):
        self.lookups.append(host)
        if host not in self.hosts:
            raise socket.gaierror(socket.EAI_NONAME, "Name or service not known")
        return [
            (
                socket.AF_INET6 if ":" in address else socket.AF_INET,
                socket.SOCK_STREAM,
                6,
                "",
                (address, 0),
            )
            for address in self.hosts[host]
        ]


class FakeWeb:
    """Serves canned responses keyed by URL and records every request."""

    def __init__(self):
        self.pages = {}
        self.requests = []

    def add(self, url: str, body, status: int = 200):
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.pages[url] = (status, body)

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        if url not in self.pages:
            return httpx.Response(404, text="not found")
        status, body = self.pages[url]
        return httpx.Response(status, content=body, headers={"content-type": "text/html"})

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def resolver():
    """Resolver where example.com and example.org are public hosts."""
    return FakeResolver({
        "example.com": ["93.184.216.34"],
        "example.org": ["93.184.216.35"],
        "internal.example.com": ["10.0.0.5"],
        "mixed.example.com": ["93.184.216.36", "192.168.1.10"],
        "localhost": ["127.0.0.1"],
    })


@pytest.fixture
def web():
    """In-memory web server."""
    return FakeWeb()


def _split_document(document: str) -> tuple[dict, str]:
    assert document.startswith("---\n"), "document has no frontmatter block"
    end = document.find("\n---\n", 3)
    assert end != -1, "frontmatter block is not terminated"
    body = document[end + 5:]
    if body.startswith("\n"):
        body = body[1:]
    return yaml.safe_load(document[4:end + 1]) or {}, body


@pytest.fixture
def split_document():
    """Split a written document into its parsed frontmatter and body."""
    return _split_document
