"""Policy scoring and ranking against a medication list.

Scoring is deterministic: each medication earns 2 points when fully
covered, ``percent / 100`` points when partially covered and nothing
otherwise.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from policy_pulse.schemas.coverage import CoverageType
from policy_pulse.schemas.directory import PolicyRecord
from policy_pulse.schemas.recommendation import PolicyScore, RankedPolicy, ScoreDetail
from policy_pulse.services.coverage.coverage_normalizer import normalize_coverage_map
from policy_pulse.utils.logging import get_logger
from policy_pulse.utils.medications import unique_medication_names

LOGGER = get_logger(__name__)

FULL_COVERAGE_POINTS = 2.0


def score_policy(coverage_map_raw: Any, medications: Sequence[Any]) -> PolicyScore:
    """Score how well one coverage map covers a medication list.

    Args:
        coverage_map_raw: Coverage map in any stored shape
        medications: Medication names; duplicates after normalization count once

    Returns:
        PolicyScore with a per-medication breakdown
    """
    coverage = normalize_coverage_map(coverage_map_raw)
    meds = unique_medication_names(medications)

    details: List[ScoreDetail] = []
    full = 0
    partial = 0
    percent_total = 0.0

    for med in meds:
        entry = coverage.get(med)
        points = 0.0
        if entry is not None and entry.type == CoverageType.COVERED:
            points = FULL_COVERAGE_POINTS
            full += 1
        elif entry is not None and entry.type == CoverageType.PERCENT:
            points = min(max(entry.covered_percent() / 100.0, 0.0), 1.0)
            if points > 0:
                partial += 1
        percent_total += entry.covered_percent() if entry is not None else 0.0
        details.append(ScoreDetail(medication=med, coverage=entry, points=points, covered=points > 0))

    total = len(meds)
    return PolicyScore(
        covered_count=full + partial,
        total_meds=total,
        coverage_rate=(full + partial) / total if total else 0.0,
        full_coverage_count=full,
        avg_percent=percent_total / total if total else 0.0,
        score=sum(detail.points for detail in details),
        details=details,
    )


def _rank_key(ranked: RankedPolicy) -> Tuple[float, float, float, str]:
    return (
        -ranked.delta_score,
        -ranked.score.score,
        -ranked.score.coverage_rate,
        (ranked.policy.name or "").lower(),
    )


def _pct_improvement(score: float, baseline: float) -> float:
    delta = score - baseline
    if baseline > 0:
        return delta / baseline
    return 1.0 if score > 0 else 0.0


def rank_policies(
    policies: Iterable[PolicyRecord],
    medications: Sequence[Any],
    top_k: Optional[int] = None,
    baseline_score: Optional[float] = None,
) -> List[RankedPolicy]:
    """Score and order policies for a medication list.

    Ordered by improvement over ``baseline_score`` (0 when there is no
    baseline), then score, then coverage rate, then name.
    """
    ranked = []
    for policy in policies:
        score = score_policy(policy.coverage_map, medications)
        delta = score.score - baseline_score if baseline_score is not None else 0.0
        pct = _pct_improvement(score.score, baseline_score) if baseline_score is not None else 0.0
        ranked.append(RankedPolicy(
            policy=policy.to_summary(),
            insurance_company_ref=policy.insurance_company_ref,
            score=score,
            delta_score=delta,
            pct_improvement=pct,
        ))

    ranked.sort(key=_rank_key)
    if top_k is not None:
        ranked = ranked[:max(0, top_k)]
    return ranked


def recommend_better_than_current(
    current: PolicyRecord,
    candidates: Iterable[PolicyRecord],
    medications: Sequence[Any],
    min_improvement: float = 0.0,
) -> Tuple[RankedPolicy, List[RankedPolicy]]:
    """Candidates that strictly beat the current policy by at least ``min_improvement``.

    Args:
        current: The policy the user holds now
        candidates: Policies to compare against; the current one is skipped
        medications: The user's medications
        min_improvement: Minimum relative improvement; negatives count as 0

    Returns:
        Tuple of (ranked current policy, better candidates best first)
    """
    threshold = max(0.0, min_improvement)
    current_score = score_policy(current.coverage_map, medications)
    current_ranked = RankedPolicy(
        policy=current.to_summary(),
        insurance_company_ref=current.insurance_company_ref,
        score=current_score,
    )

    others = [policy for policy in candidates if policy.id != current.id]
    ranked = rank_policies(others, medications, baseline_score=current_score.score)
    better = [
        option for option in ranked
        if option.delta_score > 0 and option.pct_improvement >= threshold
    ]

    LOGGER.debug(
        "Compared candidates against current policy",
        extra={
            "current_policy_id": current.id,
            "candidate_count": len(others),
            "better_count": len(better),
        },
    )
    return current_ranked, better


def latest_versions(policies: Iterable[PolicyRecord]) -> List[PolicyRecord]:
    """Keep the highest version of each ``(name, insurance company)`` pair."""
    latest: Dict[Tuple[str, str], PolicyRecord] = {}
    for policy in policies:
        key = ((policy.name or policy.id).strip().lower(), policy.insurance_company_ref or "")
        held = latest.get(key)
        if held is None or (policy.version or 0) > (held.version or 0):
            latest[key] = policy
    return list(latest.values())
