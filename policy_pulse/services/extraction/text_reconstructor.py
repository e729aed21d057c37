"""Rebuild line-ordered text from positioned text fragments.

PDF content streams carry no paragraph structure, only fragments with
coordinates, so lines are recovered from layout: fragments whose baselines
are within a small vertical tolerance belong to the same line, read left to
right, and lines are read top to bottom.
"""

import re
from typing import Iterable, Sequence

from policy_pulse.schemas.document import PositionedTextItem

DEFAULT_Y_TOLERANCE = 2.0
PAGE_MARKER_TEMPLATE = "<<< Page {page} >>>"
PAGE_MARKER_RE = re.compile(r"^<<< Page \d+ >>>$")

_SPACE_RUN_RE = re.compile(r"[ \t]+")
_TRAILING_SPACE_RE = re.compile(r"[ \t]+$")
_BLANK_LINES_RE = re.compile(r"\n{3,}")


def squash_spaces(text: str) -> str:
    """Turn non-breaking spaces and tabs into spaces and collapse runs."""
    return _SPACE_RUN_RE.sub(" ", text.replace("\u00a0", " "))


def normalize_text(text: str) -> str:
    """Tidy a document text while keeping its line breaks.

    Each line is squashed and right-trimmed, three or more consecutive
    newlines become a single blank line, and the result is trimmed.
    """
    lines = [_TRAILING_SPACE_RE.sub("", squash_spaces(line)) for line in str(text or "").split("\n")]
    return _BLANK_LINES_RE.sub("\n\n", "\n".join(lines)).strip()


def reconstruct_page_text(
    items: Iterable[PositionedTextItem],
    y_tolerance: float = DEFAULT_Y_TOLERANCE,
) -> str:
    """Rebuild the text of one page.

    Args:
        items: Fragments of the page in any order
        y_tolerance: Maximum baseline distance for fragments to share a line

    Returns:
        Page text with one line per visual row; empty string for a page
        without usable fragments
    """
    usable = [item for item in items if item.text and item.text.strip()]
    # Top-to-bottom (PDF Y grows upward), then left-to-right
    usable.sort(key=lambda item: (-item.y, item.x))

    lines: list[str] = []
    buffer: list[PositionedTextItem] = []
    line_y = None

    def flush() -> None:
        if not buffer:
            return
        buffer.sort(key=lambda item: item.x)
        line = squash_spaces(" ".join(item.text for item in buffer)).strip()
        if line:
            lines.append(line)
        buffer.clear()

    for item in usable:
        if line_y is not None and abs(item.y - line_y) > y_tolerance:
            flush()
            line_y = None
        if line_y is None:
            line_y = item.y
        buffer.append(item)

        if item.ends_line:
            flush()
            line_y = None

    flush()
    return "\n".join(lines)


def assemble_document_text(page_texts: Sequence[str]) -> str:
    """Join page texts behind ``<<< Page N >>>`` markers and normalize."""
    out = ""
    for page_number, page_text in enumerate(page_texts, start=1):
        if page_number > 1:
            out += "\n"
        out += "\n" + PAGE_MARKER_TEMPLATE.format(page=page_number) + "\n" + page_text
    return normalize_text(out)


def reconstruct_document_text(
    pages: Iterable[Iterable[PositionedTextItem]],
    y_tolerance: float = DEFAULT_Y_TOLERANCE,
) -> str:
    """Rebuild the full text of a document from per-page fragments."""
    return assemble_document_text(
        [reconstruct_page_text(page_items, y_tolerance=y_tolerance) for page_items in pages]
    )


def is_page_marker(line: str) -> bool:
    return bool(PAGE_MARKER_RE.match(line.strip()))
