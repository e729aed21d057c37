"""Semantic diff of two coverage maps."""

from typing import Any, Optional

from policy_pulse.schemas.coverage import CoverageChange, CoverageDiff, CoverageEntry, CoverageType
from policy_pulse.services.coverage.coverage_normalizer import normalize_coverage_map
from policy_pulse.utils.logging import get_logger

LOGGER = get_logger(__name__)


def coverage_changed(old: Optional[CoverageEntry], new: Optional[CoverageEntry]) -> bool:
    """Whether two canonical entries differ in a way that matters to a patient.

    Entries differ when their type differs, or when both are percentage rules
    with a different percent or copay.
    """
    if old is None or new is None:
        return old is not new
    if old.type != new.type:
        return True
    if old.type == CoverageType.PERCENT:
        return old.percent != new.percent or old.copay != new.copay
    return False


def diff_coverage_maps(old_map_raw: Any, new_map_raw: Any) -> CoverageDiff:
    """List medications whose coverage changed between two raw coverage maps.

    Args:
        old_map_raw: Coverage map of the old policy, in any stored shape
        new_map_raw: Coverage map of the new policy, in any stored shape

    Returns:
        CoverageDiff whose ``changed_medications`` follows the old map's
        order, then the names that only appear in the new map
    """
    old_map = normalize_coverage_map(old_map_raw)
    new_map = normalize_coverage_map(new_map_raw)

    changed: list[str] = []
    details: dict[str, CoverageChange] = {}

    for medication, was in old_map.items():
        now = new_map.get(medication)
        if coverage_changed(was, now):
            changed.append(medication)
            details[medication] = CoverageChange(old=was, next=now)

    for medication, now in new_map.items():
        if medication not in old_map:
            changed.append(medication)
            details[medication] = CoverageChange(old=None, next=now)

    LOGGER.debug(
        "Coverage maps compared",
        extra={
            "old_count": len(old_map),
            "new_count": len(new_map),
            "changed_count": len(changed),
        },
    )
    return CoverageDiff(changed_medications=changed, details=details)
