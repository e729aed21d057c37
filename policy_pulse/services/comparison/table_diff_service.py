"""Row-level diffs of the coverage and out-of-pocket tables."""

from typing import Dict, List, Sequence, TypeVar

from pydantic import BaseModel

from policy_pulse.schemas.document import (
    CoverageTableRow,
    OutOfPocketRow,
    PricedCoverageChange,
    RowChange,
    TableDiff,
    TableSection,
)
from policy_pulse.services.comparison.table_extraction_service import (
    extract_coverage_rows,
    extract_oop_rows,
)

RowType = TypeVar("RowType", bound=BaseModel)

COVERAGE_FIELDS = ("coverage_type", "percent", "copay")
OOP_FIELDS = ("retail_price", "coverage_rule", "patient_pays")


def index_by_medication(rows: Sequence[RowType]) -> Dict[str, RowType]:
    """Key rows by lower-cased medication name; a repeated name keeps the last row."""
    index: Dict[str, RowType] = {}
    for row in rows:
        index[row.medication.lower()] = row
    return index


def diff_rows(
    section: TableSection,
    old_rows: Sequence[RowType],
    new_rows: Sequence[RowType],
    fields: Sequence[str],
) -> TableDiff:
    """Compare two tables row by row.

    Args:
        section: Which table the rows come from
        old_rows: Rows parsed from the old document
        new_rows: Rows parsed from the new document
        fields: Row attributes compared for medications present in both

    Returns:
        TableDiff with added and removed rows and per-field changes
    """
    old_index = index_by_medication(old_rows)
    new_index = index_by_medication(new_rows)

    added: List[dict] = []
    changed: List[RowChange] = []
    for key, new_row in new_index.items():
        old_row = old_index.get(key)
        if old_row is None:
            added.append(new_row.model_dump())
            continue

        delta = {
            field: [getattr(old_row, field), getattr(new_row, field)]
            for field in fields
            if getattr(old_row, field) != getattr(new_row, field)
        }
        if delta:
            changed.append(RowChange(
                medication=new_row.medication,
                changes=delta,
                old=old_row.model_dump(),
                new=new_row.model_dump(),
            ))

    removed = [row.model_dump() for key, row in old_index.items() if key not in new_index]

    return TableDiff(
        section=section,
        old_count=len(old_rows),
        new_count=len(new_rows),
        added=added,
        removed=removed,
        changed=changed,
    )


def diff_coverage_tables(
    old_rows: Sequence[CoverageTableRow],
    new_rows: Sequence[CoverageTableRow],
) -> TableDiff:
    return diff_rows(TableSection.COVERAGE, old_rows, new_rows, COVERAGE_FIELDS)


def diff_oop_tables(
    old_rows: Sequence[OutOfPocketRow],
    new_rows: Sequence[OutOfPocketRow],
) -> TableDiff:
    return diff_rows(TableSection.OUT_OF_POCKET, old_rows, new_rows, OOP_FIELDS)


def diff_document_tables(old_text: str, new_text: str, section: TableSection) -> TableDiff:
    """Extract one table section from both document texts and diff it."""
    if section == TableSection.COVERAGE:
        return diff_coverage_tables(extract_coverage_rows(old_text), extract_coverage_rows(new_text))
    return diff_oop_tables(extract_oop_rows(old_text), extract_oop_rows(new_text))


def merge_coverage_diff_with_prices(
    coverage_diff: TableDiff,
    new_oop_rows: Sequence[OutOfPocketRow],
) -> List[PricedCoverageChange]:
    """Flatten a coverage table diff, attaching the new patient price when known.

    Added rows come first, then changed rows, then removed rows.
    """
    prices = index_by_medication(new_oop_rows)

    def patient_pays(medication: str):
        row = prices.get(medication.lower())
        return row.patient_pays if row else None

    merged: List[PricedCoverageChange] = []
    for row in coverage_diff.added:
        merged.append(PricedCoverageChange(
            medication=row["medication"],
            status="added",
            new_coverage=row.get("coverage_type"),
            new_percent=row.get("percent"),
            new_copay=row.get("copay"),
            new_patient_pays=patient_pays(row["medication"]),
        ))
    for change in coverage_diff.changed:
        merged.append(PricedCoverageChange(
            medication=change.medication,
            status="changed",
            changes=change.changes,
            new_coverage=change.new.get("coverage_type"),
            new_percent=change.new.get("percent"),
            new_copay=change.new.get("copay"),
            new_patient_pays=patient_pays(change.medication),
        ))
    for row in coverage_diff.removed:
        merged.append(PricedCoverageChange(medication=row["medication"], status="removed"))
    return merged
