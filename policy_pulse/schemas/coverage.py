"""Schemas for canonical coverage entries, coverage diffs and cost breakdowns."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CoverageType(str, Enum):
    """Canonical coverage rule for one medication."""

    COVERED = "covered"
    PERCENT = "percent"
    NOT_COVERED = "not_covered"


class CoverageEntry(BaseModel):
    """Canonical coverage entry.

    ``percent`` is only meaningful for ``type=percent`` and is always within
    [0, 100] once normalized.
    """

    model_config = ConfigDict(frozen=True)

    type: CoverageType = CoverageType.NOT_COVERED
    percent: Optional[float] = None
    copay: Optional[float] = None

    def covered_percent(self) -> float:
        """Share of the cost the policy pays, as a percentage."""
        if self.type == CoverageType.COVERED:
            return 100.0
        if self.type == CoverageType.PERCENT:
            return min(max(self.percent or 0.0, 0.0), 100.0)
        return 0.0

    def describe(self) -> str:
        if self.type == CoverageType.COVERED:
            return "covered"
        if self.type == CoverageType.PERCENT:
            label = f"{self.percent or 0:g}% covered"
            if self.copay is not None:
                label += f" (copay ${self.copay:.2f})"
            return label
        return "not covered"


NOT_COVERED = CoverageEntry()


class CoverageChange(BaseModel):
    """Before/after entries for one medication. None means absent from that map."""

    old: Optional[CoverageEntry] = None
    next: Optional[CoverageEntry] = None


class CoverageDiff(BaseModel):
    """Set of medications whose canonical coverage differs between two maps."""

    changed_medications: list[str] = Field(
        default_factory=list,
        description="Normalized names; old-map order first, then names only in the new map",
    )
    details: dict[str, CoverageChange] = Field(default_factory=dict)

    @property
    def has_changes(self) -> bool:
        return bool(self.changed_medications)


class CostItem(BaseModel):
    """Medication with a caller-supplied retail price."""

    medication: str
    price: float = Field(..., ge=0)


class CostLine(BaseModel):
    """Patient cost for one priced medication."""

    medication: str
    matched_key: Optional[str] = Field(None, description="Coverage-map key used for the lookup")
    match_method: str = Field("none", description="exact, prefix, substring, fuzzy or none")
    input_price: float
    coverage: CoverageEntry
    patient_cost: float


class CostBreakdown(BaseModel):
    """Out-of-pocket total for a list of priced medications under one policy."""

    items: list[CostLine] = Field(default_factory=list)
    total_patient_cost: float = 0.0
