"""Coverage map normalization.

Policy records have stored coverage in several shapes over time:

* a number meaning "percent covered" (``{"metformin": 100}``)
* a list of single-key objects (``[{"metformin": 100}, ...]``)
* a mapping to typed records (``{"metformin": {"type": "percent", "percent": 50}}``)

Each raw value is classified into one variant below and converted by a
single total function, so callers never branch on shapes themselves.
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Tuple, Union

from policy_pulse.schemas.coverage import NOT_COVERED, CoverageEntry, CoverageType
from policy_pulse.utils.logging import get_logger
from policy_pulse.utils.medications import normalize_medication_name
from policy_pulse.utils.numbers import parse_number

LOGGER = get_logger(__name__)

CoverageMap = Dict[str, CoverageEntry]


@dataclass(frozen=True)
class PercentValue:
    """Bare number, or numeric string, meaning percent covered."""

    percent: float


@dataclass(frozen=True)
class KeywordValue:
    """Bare coverage keyword such as ``"covered"``."""

    keyword: str


@dataclass(frozen=True)
class TypedRecord:
    """Record with ``type`` and optional ``percent`` and ``copay``."""

    type: Optional[str]
    percent: Any = None
    copay: Any = None


@dataclass(frozen=True)
class Unrecognized:
    raw: Any


CoverageValue = Union[PercentValue, KeywordValue, TypedRecord, Unrecognized]


class CoverageMapShape(str, Enum):
    """Container shape of a raw coverage map."""

    EMPTY = "empty"
    ENTRY_LIST = "entry_list"
    NAME_MAPPING = "name_mapping"
    UNSUPPORTED = "unsupported"


def classify_value(raw: Any) -> CoverageValue:
    """Tag a raw coverage value with its variant."""
    if isinstance(raw, bool) or raw is None:
        return Unrecognized(raw)
    if isinstance(raw, (int, float)):
        number = parse_number(raw)
        if number is None or not math.isfinite(number):
            return Unrecognized(raw)
        return PercentValue(number)
    if isinstance(raw, str):
        number = parse_number(raw)
        if number is not None:
            return PercentValue(number)
        return KeywordValue(raw)
    if isinstance(raw, Mapping):
        type_label = raw.get("type")
        return TypedRecord(
            type=str(type_label) if type_label is not None else None,
            percent=raw.get("percent"),
            copay=raw.get("copay"),
        )
    return Unrecognized(raw)


def _type_label(label: Optional[str]) -> Optional[CoverageType]:
    if not label:
        return None
    key = label.strip().lower().replace(" ", "_").replace("-", "_")
    try:
        return CoverageType(key)
    except ValueError:
        return None


def _copay(raw: Any) -> Optional[float]:
    value = parse_number(raw)
    if value is None or value < 0 or not math.isfinite(value):
        return None
    return value


def _percent_entry(raw_percent: Any, copay: Optional[float]) -> CoverageEntry:
    """Canonical entry for a percentage rule.

    100% with no copay is full coverage and 0% with no copay is no coverage,
    so equivalent rules compare equal whatever shape they were stored in.
    """
    percent = parse_number(raw_percent)
    if percent is None or not math.isfinite(percent):
        percent = 0.0
    percent = min(max(percent, 0.0), 100.0)

    if copay is None:
        if percent >= 100.0:
            return CoverageEntry(type=CoverageType.COVERED)
        if percent <= 0.0:
            return NOT_COVERED
    return CoverageEntry(type=CoverageType.PERCENT, percent=percent, copay=copay)


def normalize_entry(raw: Any) -> CoverageEntry:
    """Convert any raw coverage value to a canonical entry. Never raises."""
    value = raw if isinstance(raw, (PercentValue, KeywordValue, TypedRecord, Unrecognized)) else classify_value(raw)

    if isinstance(value, PercentValue):
        return _percent_entry(value.percent, None)

    if isinstance(value, KeywordValue):
        kind = _type_label(value.keyword)
        if kind == CoverageType.COVERED:
            return CoverageEntry(type=CoverageType.COVERED)
        return NOT_COVERED

    if isinstance(value, TypedRecord):
        kind = _type_label(value.type)
        copay = _copay(value.copay)
        if kind is None and value.type is None and parse_number(value.percent) is not None:
            kind = CoverageType.PERCENT
        if kind == CoverageType.COVERED:
            return CoverageEntry(type=CoverageType.COVERED, copay=copay)
        if kind == CoverageType.PERCENT:
            return _percent_entry(value.percent, copay)
        return NOT_COVERED

    return NOT_COVERED


def detect_shape(raw_map: Any) -> CoverageMapShape:
    if raw_map is None:
        return CoverageMapShape.EMPTY
    if isinstance(raw_map, Mapping):
        return CoverageMapShape.NAME_MAPPING if raw_map else CoverageMapShape.EMPTY
    if isinstance(raw_map, (list, tuple)):
        return CoverageMapShape.ENTRY_LIST if raw_map else CoverageMapShape.EMPTY
    return CoverageMapShape.UNSUPPORTED


def iter_coverage_pairs(raw_map: Any) -> Iterator[Tuple[str, Any]]:
    """Yield ``(raw medication name, raw value)`` pairs in stored order."""
    shape = detect_shape(raw_map)

    if shape == CoverageMapShape.NAME_MAPPING:
        yield from raw_map.items()
    elif shape == CoverageMapShape.ENTRY_LIST:
        for item in raw_map:
            if isinstance(item, Mapping):
                yield from item.items()
            else:
                LOGGER.debug(
                    "Skipping coverage list item that is not an object",
                    extra={"item_type": type(item).__name__},
                )
    elif shape == CoverageMapShape.UNSUPPORTED:
        LOGGER.warning(
            "Unsupported coverage map shape, treating as empty",
            extra={"map_type": type(raw_map).__name__},
        )


def normalize_coverage_map(raw_map: Any) -> CoverageMap:
    """Normalize a raw coverage map into ``{medication name: CoverageEntry}``.

    Names are normalized before insertion; when two raw names collide the
    later entry wins.
    """
    coverage: CoverageMap = {}
    for raw_name, raw_value in iter_coverage_pairs(raw_map):
        name = normalize_medication_name(raw_name)
        if not name:
            continue
        coverage[name] = normalize_entry(raw_value)
    return coverage
