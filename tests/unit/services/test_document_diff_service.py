from policy_pulse.schemas.document import SegmentKind
from policy_pulse.services.comparison.document_diff_service import (
    COLLAPSED_BLOCK_MARKER,
    diff_lines,
    inline_diff,
    structured_diff,
    unified_diff,
    word_tokens,
)

OLD_TEXT = "Plan A\nmetformin covered\nlisinopril covered\nNotes\n"
NEW_TEXT = "Plan A\nmetformin percent 50\nlisinopril covered\nNotes\n"


def _rebuild(segments, skip):
    return "".join(segment.text for segment in segments if segment.kind != skip)


def test_identical_texts_have_only_equal_segments():
    result = structured_diff(OLD_TEXT, OLD_TEXT)

    assert result.granularity == "line"
    assert result.summary.added == 0
    assert result.summary.removed == 0
    assert all(segment.kind == SegmentKind.EQUAL for segment in result.segments)


def test_replaced_line_is_removed_then_added():
    segments = diff_lines(OLD_TEXT, NEW_TEXT)
    kinds = [segment.kind for segment in segments]

    assert kinds == [SegmentKind.EQUAL, SegmentKind.REMOVED, SegmentKind.ADDED, SegmentKind.EQUAL]
    assert segments[1].text == "metformin covered\n"
    assert segments[2].text == "metformin percent 50\n"


def test_segments_rebuild_both_texts():
    result = structured_diff(OLD_TEXT, NEW_TEXT)

    assert _rebuild(result.segments, skip=SegmentKind.ADDED) == OLD_TEXT
    assert _rebuild(result.segments, skip=SegmentKind.REMOVED) == NEW_TEXT
    assert result.summary.total_segments == len(result.segments)


def test_falls_back_to_words_when_no_line_is_shared():
    old = "metformin is covered at 100 percent"
    new = "metformin is covered at 50 percent"

    result = structured_diff(old, new)

    assert result.granularity == "word"
    assert any(segment.kind == SegmentKind.EQUAL for segment in result.segments)
    assert _rebuild(result.segments, skip=SegmentKind.ADDED) == old
    assert _rebuild(result.segments, skip=SegmentKind.REMOVED) == new


def test_word_tokens_split_words_spaces_and_punctuation():
    assert word_tokens("copay: $5.00") == ["copay", ":", " ", "$", "5", ".", "00"]


def test_unified_diff_labels_and_hunks():
    result = unified_diff(OLD_TEXT, NEW_TEXT, old_name="v1.pdf", new_name="v2.pdf", context=1)

    lines = result.patch.splitlines()
    assert lines[0] == "--- v1.pdf"
    assert lines[1] == "+++ v2.pdf"
    assert "-metformin covered" in lines
    assert "+metformin percent 50" in lines
    assert "Notes" not in " ".join(lines[2:])
    assert result.old_length == len(OLD_TEXT)
    assert result.new_length == len(NEW_TEXT)


def test_unified_diff_of_equal_texts_is_empty():
    assert unified_diff(OLD_TEXT, OLD_TEXT).patch == ""


def test_inline_diff_prefixes_lines():
    output = inline_diff(OLD_TEXT, NEW_TEXT).split("\n")

    assert output == [
        "  Plan A",
        "- metformin covered",
        "+ metformin percent 50",
        "  lisinopril covered",
        "  Notes",
    ]


def test_inline_diff_collapses_long_unchanged_blocks():
    shared = "".join(f"line {i}\n" for i in range(10))
    old = shared + "old tail\n"
    new = shared + "new tail\n"

    output = inline_diff(old, new, max_equal_chunk_lines=6).split("\n")

    assert output == [COLLAPSED_BLOCK_MARKER, "- old tail", "+ new tail"]


def test_inline_diff_skips_blank_changed_lines():
    output = inline_diff("a\n", "a\n\n\nb\n")

    assert output.split("\n") == ["  a", "+ b"]
