"""Schemas for policy scoring and recommendations."""

from typing import Optional

from pydantic import BaseModel, Field

from policy_pulse.schemas.coverage import CoverageEntry
from policy_pulse.schemas.directory import PolicySummary


class ScoreDetail(BaseModel):
    """How a single medication contributed to a policy score."""

    medication: str
    coverage: Optional[CoverageEntry] = Field(None, description="None when the policy does not list it")
    points: float = 0.0
    covered: bool = False


class PolicyScore(BaseModel):
    """Coverage score of one policy for a medication list."""

    covered_count: int = Field(0, description="Medications covered fully or partially")
    total_meds: int = 0
    coverage_rate: float = Field(0.0, ge=0.0, le=1.0)
    full_coverage_count: int = 0
    avg_percent: float = 0.0
    score: float = 0.0
    details: list[ScoreDetail] = Field(default_factory=list)


class RankedPolicy(BaseModel):
    """A policy with its score and its improvement over a baseline."""

    policy: PolicySummary
    insurance_company_ref: Optional[str] = None
    score: PolicyScore
    delta_score: float = 0.0
    pct_improvement: float = 0.0


class BetterOptions(BaseModel):
    """Policies that beat a user's current policy for their medications."""

    user_id: str
    medications: list[str] = Field(default_factory=list)
    min_improvement: float = 0.0
    resolved_current_policy_id: str
    current: RankedPolicy
    count: int = 0
    better_options: list[RankedPolicy] = Field(default_factory=list)


class CoverageRanking(BaseModel):
    """Policies ranked by how well they cover a medication list."""

    medications: list[str] = Field(default_factory=list)
    ranking: list[RankedPolicy] = Field(default_factory=list)
    skipped: list[str] = Field(
        default_factory=list,
        description="Candidate references that could not be loaded",
    )
