from policy_pulse.schemas.document import PositionedTextItem as Item
from policy_pulse.services.extraction.text_reconstructor import (
    assemble_document_text,
    is_page_marker,
    normalize_text,
    reconstruct_document_text,
    reconstruct_page_text,
)


def test_orders_lines_top_to_bottom_and_fragments_left_to_right():
    items = [
        Item("World", x=60, y=700),
        Item("Second line", x=10, y=680),
        Item("Hello", x=10, y=700.8),
    ]

    assert reconstruct_page_text(items) == "Hello World\nSecond line"


def test_fragments_within_tolerance_share_a_line():
    items = [Item("a", x=0, y=100), Item("b", x=10, y=101.5), Item("c", x=20, y=104)]

    assert reconstruct_page_text(items, y_tolerance=2.0) == "c\na b"


def test_end_of_line_flag_forces_a_break():
    items = [Item("left", x=0, y=100, ends_line=True), Item("right", x=50, y=100)]

    assert reconstruct_page_text(items) == "left\nright"


def test_blank_fragments_and_nbsp_are_dropped_or_squashed():
    items = [Item("   ", x=0, y=100), Item("Metformin\u00a0 500mg", x=5, y=100), Item("", x=9, y=100)]

    assert reconstruct_page_text(items) == "Metformin 500mg"


def test_empty_page_gives_empty_string():
    assert reconstruct_page_text([]) == ""


def test_document_text_carries_page_markers():
    pages = [
        [Item("Page one", x=0, y=700)],
        [Item("Page two", x=0, y=700)],
    ]

    text = reconstruct_document_text(pages)

    assert text == "<<< Page 1 >>>\nPage one\n\n<<< Page 2 >>>\nPage two"
    assert is_page_marker(text.split("\n")[0])
    assert not is_page_marker("Page one")


def test_normalize_collapses_blank_runs_and_trailing_space():
    assert normalize_text("a  b \t\n\n\n\nc   ") == "a b\n\nc"


def test_reconstruction_is_idempotent():
    page_texts = ["Coverage  Map\nmetformin   covered", "", "Notes"]

    once = assemble_document_text(page_texts)
    again = normalize_text(once)

    assert again == once
