"""Line and word level diffs between two document texts.

Three views share one line diff: a structured segment list, a unified
patch and an inline ``+``/``-`` listing. All functions are pure.
"""

import difflib
import re
from typing import Iterable, List, Sequence

from policy_pulse.schemas.document import DiffSegment, DiffSummary, SegmentKind, StructuredDiff, UnifiedDiff
from policy_pulse.utils.logging import get_logger

LOGGER = get_logger(__name__)

COLLAPSED_BLOCK_MARKER = " … … (unchanged block collapsed) … … "
DEFAULT_CONTEXT_LINES = 3
DEFAULT_MAX_EQUAL_CHUNK_LINES = 6

_WORD_TOKEN_RE = re.compile(r"\w+|\s+|[^\w\s]")

_INLINE_PREFIX = {
    SegmentKind.ADDED: "+",
    SegmentKind.REMOVED: "-",
    SegmentKind.EQUAL: " ",
}


def line_tokens(text: str) -> List[str]:
    return text.splitlines(keepends=True)


def word_tokens(text: str) -> List[str]:
    """Split into word runs, whitespace runs and single punctuation marks."""
    return _WORD_TOKEN_RE.findall(text)


def diff_tokens(old_tokens: Sequence[str], new_tokens: Sequence[str]) -> List[DiffSegment]:
    """Diff two token sequences into coalesced segments.

    A replaced range is reported as its removed tokens followed by its added
    tokens, so equal+added segments rebuild the new text and equal+removed
    segments rebuild the old text.
    """
    matcher = difflib.SequenceMatcher(None, old_tokens, new_tokens, autojunk=False)
    segments: List[DiffSegment] = []

    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            _append(segments, SegmentKind.EQUAL, old_tokens[i1:i2])
            continue
        if tag in ("delete", "replace"):
            _append(segments, SegmentKind.REMOVED, old_tokens[i1:i2])
        if tag in ("insert", "replace"):
            _append(segments, SegmentKind.ADDED, new_tokens[j1:j2])

    return segments


def _append(segments: List[DiffSegment], kind: SegmentKind, tokens: Iterable[str]) -> None:
    text = "".join(tokens)
    if not text:
        return
    if segments and segments[-1].kind == kind:
        segments[-1] = DiffSegment(kind=kind, text=segments[-1].text + text)
    else:
        segments.append(DiffSegment(kind=kind, text=text))


def diff_lines(old_text: str, new_text: str) -> List[DiffSegment]:
    return diff_tokens(line_tokens(old_text), line_tokens(new_text))


def diff_words(old_text: str, new_text: str) -> List[DiffSegment]:
    return diff_tokens(word_tokens(old_text), word_tokens(new_text))


def summarize_segments(segments: Sequence[DiffSegment]) -> DiffSummary:
    return DiffSummary(
        added=sum(1 for segment in segments if segment.kind == SegmentKind.ADDED),
        removed=sum(1 for segment in segments if segment.kind == SegmentKind.REMOVED),
        total_segments=len(segments),
    )


def structured_diff(old_text: str, new_text: str) -> StructuredDiff:
    """Line diff with a word-level retry when no line survived unchanged.

    A line diff without a single equal segment usually means the two
    extractions wrapped lines differently; diffing words recovers the shared
    content instead of reporting the whole document as replaced.
    """
    segments = diff_lines(old_text, new_text)
    granularity = "line"

    if segments and not any(segment.kind == SegmentKind.EQUAL for segment in segments):
        LOGGER.info(
            "Line diff found no common lines, retrying at word granularity",
            extra={"segment_count": len(segments)},
        )
        segments = diff_words(old_text, new_text)
        granularity = "word"

    return StructuredDiff(
        granularity=granularity,
        summary=summarize_segments(segments),
        segments=segments,
    )


def unified_diff(
    old_text: str,
    new_text: str,
    old_name: str = "old.pdf",
    new_name: str = "new.pdf",
    context: int = DEFAULT_CONTEXT_LINES,
) -> UnifiedDiff:
    """Standard unified patch between two labeled texts."""
    patch_lines = difflib.unified_diff(
        old_text.splitlines(),
        new_text.splitlines(),
        fromfile=old_name,
        tofile=new_name,
        n=max(0, int(context)),
        lineterm="",
    )
    patch = "\n".join(patch_lines)
    if patch:
        patch += "\n"
    return UnifiedDiff(patch=patch, old_length=len(old_text), new_length=len(new_text))


def inline_diff(
    old_text: str,
    new_text: str,
    max_equal_chunk_lines: int = DEFAULT_MAX_EQUAL_CHUNK_LINES,
) -> str:
    """Merged view with ``+``/``-``/`` `` prefixes and long equal runs collapsed."""
    lines: List[str] = []
    for segment in diff_lines(old_text, new_text):
        prefix = _INLINE_PREFIX[segment.kind]
        block = segment.text.split("\n")
        if block and block[-1] == "":
            block.pop()

        if segment.kind == SegmentKind.EQUAL and len(block) > max_equal_chunk_lines:
            lines.append(COLLAPSED_BLOCK_MARKER)
            continue

        for line in block:
            if line == "" and segment.kind != SegmentKind.EQUAL:
                continue
            lines.append(f"{prefix} {line}")

    return "\n".join(lines)
