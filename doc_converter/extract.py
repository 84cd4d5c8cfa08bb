"""Selector-scoped content and page metadata extraction."""

import logging

from bs4 import BeautifulSoup
from soupsieve import SelectorSyntaxError

from .errors import ParseError, SelectorMissError

logger = logging.getLogger(__name__)


def parse_document(body: bytes, url: str) -> BeautifulSoup:
    """Parse a fetched page.

    Args:
        body: Raw HTML bytes; the parser detects the encoding
        url: Source URL, used in error messages

    Returns:
        Parsed document

    Raises:
        ParseError: If the document cannot be parsed
    """
    try:
        return BeautifulSoup(body, "lxml")
    except Exception as e:
        raise ParseError(url, f"failed to read HTML for {url}: {e}") from e


def extract_content(document: BeautifulSoup, selector: str, url: str) -> str:
    """Return the inner HTML of the first element matching ``selector``.

    Raises:
        SelectorMissError: If nothing matches or the selector is invalid
    """
    try:
        element = document.select_one(selector)
    except SelectorSyntaxError as e:
        logger.warning(f"Invalid selector '{selector}' for {url}: {e}")
        element = None

    if element is None:
        raise SelectorMissError(url, selector)

    return element.decode_contents()


def page_title(document: BeautifulSoup) -> str:
    """Return the trimmed text of the first ``<title>``, or an empty string."""
    title = document.find("title")
    if title is None:
        return ""
    return title.get_text().strip()


def _meta_content(document: BeautifulSoup, name: str):
    content = None
    for tag in document.find_all("meta", attrs={"name": name}):
        if tag.has_attr("content"):
            content = tag["content"]
    return content


def extract_metadata(document: BeautifulSoup, url: str) -> dict[str, str]:
    """Collect frontmatter fields from a parsed page.

    ``source`` is always present; ``title``, ``description`` and ``keywords``
    only when the page provides them. When a meta tag is repeated the last
    one wins.
    """
    metadata = {"source": url}

    title = page_title(document)
    if title:
        metadata["title"] = title

    for name in ("description", "keywords"):
        content = _meta_content(document, name)
        if content is not None:
            metadata[name] = content

    return metadata
