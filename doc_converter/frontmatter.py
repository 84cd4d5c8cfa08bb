"""YAML frontmatter composition."""

import yaml

from .errors import SerializationError


def compose_document(metadata: dict[str, str], body: str, url: str = "") -> bytes:
    """Prepend a ``---``-delimited YAML block to a Markdown body.

    Args:
        metadata: String-valued page metadata
        body: Rendered Markdown
        url: Source URL, used in error messages

    Returns:
        UTF-8 encoded document

    Raises:
        SerializationError: If the metadata cannot be serialized
    """
    for key, value in metadata.items():
        if not isinstance(value, str):
            raise SerializationError(
                url, f"failed to marshal YAML: {key!r} is {type(value).__name__}, not str"
            )

    try:
        frontmatter = yaml.safe_dump(
            metadata,
            sort_keys=True,
            allow_unicode=True,
            default_flow_style=False,
            width=float("inf"),
        )
    except yaml.YAMLError as e:
        raise SerializationError(url, f"failed to marshal YAML: {e}") from e

    return f"---\n{frontmatter}---\n\n{body}".encode("utf-8")
