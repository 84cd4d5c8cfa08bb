"""Simplified HTML to Markdown rendering.

Only headings, paragraphs and links are rendered structurally. Links inside
a heading or paragraph are rendered inline at the position they occupy in
the block's text; everything else contributes nothing unless the fragment
has no renderable elements at all, in which case its plain text is used.
"""

import re

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from .errors import ParseError

HEADING_LEVELS = {f"h{level}": "#" * level for level in range(1, 7)}
BLOCK_TAGS = [*HEADING_LEVELS, "p"]
RENDERED_TAGS = [*BLOCK_TAGS, "a"]
SKIPPED_TAGS = {"script", "style", "noscript", "template"}

_BLANK_LINES = re.compile(r"\n[ \t]*\n(?:[ \t]*\n)*")


def _link(text: str, tag: Tag) -> str:
    href = tag.get("href")
    if href is None:
        return text
    return f"[{text}]({href})"


def _inline_text(element: Tag) -> str:
    """Text of a block element with nested links rendered as Markdown."""
    parts = []
    for child in element.children:
        if isinstance(child, Comment):
            continue
        if isinstance(child, NavigableString):
            parts.append(str(child))
        elif isinstance(child, Tag):
            if child.name in SKIPPED_TAGS:
                continue
            if child.name == "a":
                text = _inline_text(child).strip()
                if text:
                    parts.append(_link(text, child))
            else:
                parts.append(_inline_text(child))
    return "".join(parts)


def _inside_block(element: Tag, scope: Tag) -> bool:
    for parent in element.parents:
        if parent is scope:
            return False
        if parent.name in BLOCK_TAGS:
            return True
    return False


def html_to_markdown(fragment: str, url: str = "") -> str:
    """Convert an HTML fragment to Markdown.

    Args:
        fragment: HTML to convert
        url: Source URL, used in error messages

    Returns:
        Markdown with runs of blank lines collapsed and outer whitespace trimmed

    Raises:
        ParseError: If the fragment cannot be parsed
    """
    try:
        soup = BeautifulSoup(fragment, "lxml")
    except Exception as e:
        raise ParseError(url, f"failed to parse HTML for markdown conversion: {e}") from e

    scope = soup.find("body") or soup
    output = []

    for element in scope.find_all(RENDERED_TAGS):
        if _inside_block(element, scope):
            continue

        text = _inline_text(element).strip()
        if not text:
            continue

        if element.name == "a":
            output.append(_link(text, element))
            continue

        # Blocks always start on their own line, even after a bare link
        if output and not output[-1].endswith("\n"):
            output.append("\n\n")

        if element.name == "p":
            output.append(f"{text}\n\n")
        else:
            output.append(f"{HEADING_LEVELS[element.name]} {text}\n\n")

    markdown = "".join(output)
    if not markdown:
        markdown = scope.get_text().strip()

    return _BLANK_LINES.sub("\n\n", markdown).strip()
