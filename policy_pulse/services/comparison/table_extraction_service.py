"""Locate and parse the two tables of the product's policy template.

The coverage table sits between the "Simplified Medication Coverage Map"
heading and the out-of-pocket heading; the out-of-pocket (OOP) table sits
between that heading and "Notes". Reconstructed PDF text keeps columns apart
with runs of spaces when the layout allows it, and collapses them to single
spaces when it does not, so each parser has a primary column split and a
keyword or pipe based fallback.
"""

import re
from typing import List, Optional, Sequence

from policy_pulse.core.exceptions import ValidationError
from policy_pulse.schemas.document import CoverageTableRow, OutOfPocketRow, TableSection
from policy_pulse.services.extraction.text_reconstructor import is_page_marker
from policy_pulse.utils.numbers import is_number, parse_money, parse_number

COVERAGE_START = "Simplified Medication Coverage Map"
COVERAGE_END = "Illustrative Out-of-Pocket"
OOP_START = "Illustrative Out-of-Pocket (OOP) Examples"
OOP_END = "Notes"

_COLUMN_SPLIT_RE = re.compile(r"[ \t]{2,}")
_PIPE_SPLIT_RE = re.compile(r"\s*\|\s*")
_COVERAGE_KEYWORD_RE = re.compile(r"\b(covered|not_covered|percent)\b", re.IGNORECASE)
COVERAGE_HEADER_PATTERNS = (r"Medication", r"Coverage\s*Type")
OOP_HEADER_PATTERNS = (r"Medication", r"Retail Price", r"Coverage Rule")
_OOP_STOP_RE = re.compile(r"^Illustrative Out-of-Pocket", re.IGNORECASE)


def slice_between(text: str, start_marker: str, end_marker: str) -> str:
    """Text after ``start_marker`` up to ``end_marker``.

    A missing start marker yields ""; a missing end marker runs to the end.
    """
    start = text.find(start_marker)
    if start == -1:
        return ""
    body_start = start + len(start_marker)
    end = text.find(end_marker, body_start)
    return (text[body_start:] if end == -1 else text[body_start:end]).strip()


def extract_coverage_block(full_text: str) -> str:
    return slice_between(full_text, COVERAGE_START, COVERAGE_END)


def extract_oop_block(full_text: str) -> str:
    return slice_between(full_text, OOP_START, OOP_END)


def split_columns(line: str) -> List[str]:
    """Split a row on runs of two or more spaces or tabs."""
    return [cell.strip() for cell in _COLUMN_SPLIT_RE.split(line.strip()) if cell.strip()]


def _content_lines(block: str) -> List[str]:
    lines = (line.strip() for line in block.split("\n"))
    return [line for line in lines if line and not is_page_marker(line)]


def _skip_header(lines: List[str], patterns: Sequence[str]) -> List[str]:
    for index, line in enumerate(lines):
        if all(re.search(pattern, line, re.IGNORECASE) for pattern in patterns):
            return lines[index + 1:]
    return lines


def parse_coverage_row(raw_line: str) -> Optional[CoverageTableRow]:
    """Parse one coverage row.

    Accepted forms include ``med  covered``, ``med  percent  50``,
    ``med  percent  100  2.0``, ``med  percent  80  copay  5`` and
    single-spaced variants such as ``ibuprofen 200mg percent 50``.
    """
    cols = split_columns(raw_line)

    if len(cols) == 1:
        match = _COVERAGE_KEYWORD_RE.search(raw_line)
        if not match:
            return None
        medication = raw_line[:match.start()].strip()
        rest = raw_line[match.start():].strip()
        cols = [medication] + rest.split()

    if not cols or not cols[0]:
        return None

    medication = cols[0]
    coverage_type = cols[1] if len(cols) > 1 else ""
    percent: Optional[float] = None
    copay: Optional[float] = None
    notes_start = 4
    kind = coverage_type.lower()

    if kind == "percent":
        if len(cols) > 2 and is_number(cols[2]):
            percent = parse_number(cols[2])
        if len(cols) > 3:
            if is_number(cols[3]):
                copay = parse_number(cols[3])
            elif cols[3].lower() == "copay" and len(cols) > 4 and is_number(cols[4]):
                copay = parse_number(cols[4])
                notes_start = 5
    elif kind not in ("covered", "not_covered"):
        # The extractor sometimes glues the remaining cells into column two,
        # e.g. ["paracetamol 500mg", "percent 100 2.0"]
        parts = coverage_type.split()
        if parts and parts[0].lower() == "percent":
            coverage_type = "percent"
            if len(parts) > 1 and is_number(parts[1]):
                percent = parse_number(parts[1])
            if len(parts) > 2 and is_number(parts[2]):
                copay = parse_number(parts[2])
        elif parts:
            coverage_type = parts[0]
        for cell in cols[2:]:
            if copay is None and coverage_type.lower() != "percent" and is_number(cell):
                copay = parse_number(cell)

    notes = " ".join(cols[notes_start:]) if len(cols) > notes_start else None

    return CoverageTableRow(
        medication=medication,
        coverage_type=coverage_type.lower(),
        percent=percent,
        copay=copay,
        notes=notes or None,
    )


def parse_coverage_table(block: str) -> List[CoverageTableRow]:
    lines = _content_lines(block)
    lines = _skip_header(lines, COVERAGE_HEADER_PATTERNS)

    rows: List[CoverageTableRow] = []
    for raw_line in lines:
        if _OOP_STOP_RE.match(raw_line):
            break
        row = parse_coverage_row(raw_line)
        if row is not None:
            rows.append(row)
    return rows


def parse_oop_row(raw_line: str) -> Optional[OutOfPocketRow]:
    """Parse one row such as ``paracetamol 500mg  $4.00  covered  $0.00``."""
    cols = split_columns(raw_line)
    if len(cols) < 3:
        cols = [cell.strip() for cell in _PIPE_SPLIT_RE.split(raw_line.strip())]
    if len(cols) < 3:
        return None

    return OutOfPocketRow(
        medication=cols[0],
        retail_price=parse_money(cols[1]),
        coverage_rule=cols[2],
        patient_pays=parse_money(cols[3]) if len(cols) > 3 else None,
    )


def parse_oop_table(block: str) -> List[OutOfPocketRow]:
    lines = _content_lines(block)
    lines = _skip_header(lines, OOP_HEADER_PATTERNS)

    rows: List[OutOfPocketRow] = []
    for raw_line in lines:
        if raw_line.lower() == OOP_END.lower():
            break
        row = parse_oop_row(raw_line)
        if row is not None:
            rows.append(row)
    return rows


def extract_coverage_rows(full_text: str) -> List[CoverageTableRow]:
    return parse_coverage_table(extract_coverage_block(full_text))


def extract_oop_rows(full_text: str) -> List[OutOfPocketRow]:
    return parse_oop_table(extract_oop_block(full_text))


def parse_section(value: str) -> TableSection:
    """Resolve a ``section`` parameter, raising ValidationError when unknown."""
    try:
        return TableSection((value or "").strip().lower())
    except ValueError as e:
        raise ValidationError(f"Unknown table section: {value}", original_error=e) from e
