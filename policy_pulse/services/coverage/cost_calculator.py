"""Out-of-pocket cost computation for caller-supplied medication prices."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional, Sequence, Tuple

from rapidfuzz import fuzz, process

from policy_pulse.config import settings
from policy_pulse.schemas.coverage import (
    NOT_COVERED,
    CostBreakdown,
    CostItem,
    CostLine,
    CoverageEntry,
    CoverageType,
)
from policy_pulse.services.coverage.coverage_normalizer import CoverageMap, normalize_coverage_map
from policy_pulse.utils.logging import get_logger
from policy_pulse.utils.medications import normalize_medication_name

LOGGER = get_logger(__name__)

CENT = Decimal("0.01")


def to_cents(value: float) -> float:
    return float(Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP))


def match_medication(
    coverage: CoverageMap,
    medication: str,
    fuzzy_threshold: Optional[float] = None,
) -> Tuple[Optional[str], str]:
    """Find the coverage-map key for a free-text medication name.

    Tries an exact normalized match, then prefix, then substring (longest key
    wins), then a rapidfuzz token-set match above the threshold.

    Returns:
        Tuple of (matched key or None, match method)
    """
    query = normalize_medication_name(medication)
    if not query or not coverage:
        return None, "none"
    if query in coverage:
        return query, "exact"

    prefix_hits = [key for key in coverage if key.startswith(query) or query.startswith(key)]
    if prefix_hits:
        return max(prefix_hits, key=len), "prefix"

    substring_hits = [key for key in coverage if key in query or query in key]
    if substring_hits:
        return max(substring_hits, key=len), "substring"

    threshold = settings.fuzzy_match_threshold if fuzzy_threshold is None else fuzzy_threshold
    best = process.extractOne(
        query,
        list(coverage.keys()),
        scorer=fuzz.token_set_ratio,
        score_cutoff=threshold,
    )
    if best is not None:
        return best[0], "fuzzy"
    return None, "none"


def patient_cost(entry: CoverageEntry, price: float) -> float:
    """Amount the patient pays for one medication at ``price``."""
    copay = entry.copay or 0.0
    if entry.type == CoverageType.COVERED:
        return to_cents(min(copay, price))
    if entry.type == CoverageType.PERCENT:
        share = 1.0 - entry.covered_percent() / 100.0
        return to_cents(price * share + copay)
    return to_cents(price)


def compute_cost(
    coverage_map_raw: Any,
    items: Sequence[CostItem],
    fuzzy_threshold: Optional[float] = None,
) -> CostBreakdown:
    """Compute what the patient pays for each priced medication under a policy.

    Args:
        coverage_map_raw: The policy's coverage map in any stored shape
        items: Medications with the prices the caller supplied
        fuzzy_threshold: Optional override of the fuzzy match threshold

    Returns:
        CostBreakdown with one line per item and the total
    """
    coverage = normalize_coverage_map(coverage_map_raw)
    lines = []
    total = Decimal("0")

    for item in items:
        key, method = match_medication(coverage, item.medication, fuzzy_threshold)
        entry = coverage[key] if key is not None else NOT_COVERED
        cost = patient_cost(entry, item.price)
        total += Decimal(str(cost))
        lines.append(CostLine(
            medication=item.medication,
            matched_key=key,
            match_method=method,
            input_price=item.price,
            coverage=entry,
            patient_cost=cost,
        ))
        if method not in ("exact", "none"):
            LOGGER.info(
                f"Matched '{item.medication}' to coverage key '{key}' by {method}",
                extra={"medication": item.medication, "matched_key": key, "method": method},
            )

    return CostBreakdown(items=lines, total_patient_cost=float(total.quantize(CENT)))
