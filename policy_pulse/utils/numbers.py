"""Tolerant numeric parsing for values scraped from document text."""

import re
from typing import Any, Optional

_NUMBER_RE = re.compile(r"^[-+]?\d+(?:\.\d+)?$")
_MONEY_IN_TEXT_RE = re.compile(r"\$?(-?\d+(?:\.\d+)?)")


def clean_numeric_text(value: str) -> str:
    """Strip a currency sign, a trailing percent sign and thousands separators."""
    text = value.strip()
    if text.startswith("$"):
        text = text[1:]
    if text.endswith("%"):
        text = text[:-1]
    return text.replace(",", "").strip()


def parse_number(value: Any) -> Optional[float]:
    """Parse a cell such as ``50``, ``$1,200.50`` or ``75%``.

    Returns:
        The float value, or None when the cell is not a plain number
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return float(value)
        except OverflowError:
            return None
    text = clean_numeric_text(str(value))
    if not _NUMBER_RE.match(text):
        return None
    return float(text)


def is_number(value: Any) -> bool:
    return parse_number(value) is not None


def parse_money(value: Any) -> Optional[float]:
    """Find the first amount inside a loosely formatted money cell.

    ``"$1,234.50 est."`` gives 1234.5; a cell without digits gives None.
    """
    if value is None:
        return None
    compact = re.sub(r"[,\s]", "", str(value))
    match = _MONEY_IN_TEXT_RE.search(compact)
    return float(match.group(1)) if match else None
