"""Output filenames and document writes."""

import logging
import re
from pathlib import Path
from urllib.parse import urlparse

from .errors import WriteError

logger = logging.getLogger(__name__)

FALLBACK_NAME = "untitled"

_DISALLOWED = re.compile(r"[^a-z0-9_]+")


def sanitize_filename(name: str) -> str:
    """Lowercase, turn spaces into underscores and drop anything else."""
    name = name.lower().replace(" ", "_")
    return _DISALLOWED.sub("", name)


def document_filename(title: str, url: str) -> str:
    """Derive the ``.md`` filename for a page.

    Uses the page title, else the last non-empty segment of the URL path,
    else ``untitled``.
    """
    name = title.strip()
    if not name:
        try:
            segments = [s for s in urlparse(url).path.split("/") if s]
        except ValueError:
            segments = []
        name = segments[-1] if segments else FALLBACK_NAME

    return f"{sanitize_filename(name) or FALLBACK_NAME}.md"


def write_document(output_dir: Path, filename: str, content: bytes, url: str = "") -> Path:
    """Write a composed document; an existing file of the same name is replaced.

    Raises:
        WriteError: If the file cannot be written
    """
    filepath = Path(output_dir) / filename
    try:
        filepath.write_bytes(content)
    except OSError as e:
        raise WriteError(url, f"failed to write file: {e}") from e

    logger.info(f"Saved {url or filename} to {filepath}")
    return filepath
