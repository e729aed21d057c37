"""Schemas for document text reconstruction and document/table diffs."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


@dataclass(frozen=True)
class PositionedTextItem:
    """One text fragment on a page with its baseline position.

    Coordinates follow the PDF convention: origin at the bottom-left of the
    page, Y increasing upward, units in points.
    """

    text: str
    x: float
    y: float
    ends_line: bool = False


class SegmentKind(str, Enum):
    """How a diff segment relates the old text to the new text."""

    ADDED = "added"
    REMOVED = "removed"
    EQUAL = "equal"


class DiffSegment(BaseModel):
    """A contiguous run of text that was added, removed or kept."""

    kind: SegmentKind = Field(..., description="added, removed or equal")
    text: str = Field(..., description="Segment text including its line breaks")


class DiffSummary(BaseModel):
    """Segment counts for a structured diff."""

    added: int = Field(0, description="Number of added segments")
    removed: int = Field(0, description="Number of removed segments")
    total_segments: int = Field(0, description="Total number of segments")


class StructuredDiff(BaseModel):
    """Structured diff between two document texts."""

    granularity: Literal["line", "word"] = Field(
        "line", description="Granularity of the reported segments"
    )
    summary: DiffSummary
    segments: list[DiffSegment] = Field(default_factory=list)


class UnifiedDiff(BaseModel):
    """Unified patch text between two labeled documents."""

    patch: str
    old_length: int = Field(..., description="Length of the old document text")
    new_length: int = Field(..., description="Length of the new document text")


class CompareFormat(str, Enum):
    """Output shape requested from a PDF comparison."""

    JSON = "json"
    UNIFIED = "unified"
    INLINE = "inline"
    TABLE = "table"


class TableSection(str, Enum):
    """The two table layouts found in the product's policy template."""

    COVERAGE = "coverage"
    OUT_OF_POCKET = "oop"


class CoverageTableRow(BaseModel):
    """Row of the 'Simplified Medication Coverage Map' table."""

    medication: str
    coverage_type: str = Field("", description="covered, percent, not_covered or raw text")
    percent: Optional[float] = None
    copay: Optional[float] = None
    notes: Optional[str] = None


class OutOfPocketRow(BaseModel):
    """Row of the 'Illustrative Out-of-Pocket (OOP) Examples' table."""

    medication: str
    retail_price: Optional[float] = None
    coverage_rule: str = ""
    patient_pays: Optional[float] = None


class RowChange(BaseModel):
    """Field-level change for a medication present in both tables."""

    medication: str
    changes: dict[str, list[Any]] = Field(
        default_factory=dict,
        description="Changed field name -> [old value, new value]",
    )
    old: dict[str, Any]
    new: dict[str, Any]


class TableDiff(BaseModel):
    """Row-level diff of one table section between two documents."""

    section: TableSection
    old_count: int = 0
    new_count: int = 0
    added: list[dict[str, Any]] = Field(default_factory=list)
    removed: list[dict[str, Any]] = Field(default_factory=list)
    changed: list[RowChange] = Field(default_factory=list)


class PricedCoverageChange(BaseModel):
    """Coverage table change flattened together with the new patient price."""

    medication: str
    status: Literal["added", "changed", "removed"]
    changes: Optional[dict[str, list[Any]]] = None
    new_coverage: Optional[str] = None
    new_percent: Optional[float] = None
    new_copay: Optional[float] = None
    new_patient_pays: Optional[float] = None
