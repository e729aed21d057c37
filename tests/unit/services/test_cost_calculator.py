import pytest

from policy_pulse.schemas.coverage import CostItem, CoverageEntry, CoverageType
from policy_pulse.services.coverage.cost_calculator import compute_cost, match_medication, patient_cost
from policy_pulse.services.coverage.coverage_normalizer import normalize_coverage_map

COVERAGE_MAP = {
    "metformin 500mg": {"type": "covered", "copay": 3},
    "lisinopril": {"type": "percent", "percent": 80, "copay": 5},
    "atorvastatin calcium": 50,
    "insulin glargine": 0,
}


@pytest.mark.parametrize(
    "query, expected",
    [
        ("Lisinopril", ("lisinopril", "exact")),
        ("metformin", ("metformin 500mg", "prefix")),
        ("generic atorvastatin calcium tablets", ("atorvastatin calcium", "substring")),
        ("glargine insulin", ("insulin glargine", "fuzzy")),
        ("warfarin", (None, "none")),
    ],
)
def test_match_medication_strategies(query, expected):
    coverage = normalize_coverage_map(COVERAGE_MAP)

    assert match_medication(coverage, query) == expected


def test_fuzzy_threshold_can_reject_matches():
    coverage = normalize_coverage_map(COVERAGE_MAP)

    assert match_medication(coverage, "glargin insuline", fuzzy_threshold=99) == (None, "none")


@pytest.mark.parametrize(
    "entry, price, expected",
    [
        (CoverageEntry(type=CoverageType.COVERED), 40.0, 0.0),
        (CoverageEntry(type=CoverageType.COVERED, copay=3.0), 40.0, 3.0),
        (CoverageEntry(type=CoverageType.COVERED, copay=10.0), 4.0, 4.0),
        (CoverageEntry(type=CoverageType.PERCENT, percent=80.0, copay=5.0), 100.0, 25.0),
        (CoverageEntry(type=CoverageType.PERCENT, percent=33.0), 10.005, 6.70),
        (CoverageEntry(), 12.34, 12.34),
    ],
)
def test_patient_cost(entry, price, expected):
    assert patient_cost(entry, price) == pytest.approx(expected)


def test_compute_cost_totals_lines():
    items = [
        CostItem(medication="Metformin", price=4.0),
        CostItem(medication="lisinopril", price=100.0),
        CostItem(medication="atorvastatin calcium", price=30.0),
        CostItem(medication="warfarin", price=12.5),
    ]

    result = compute_cost(COVERAGE_MAP, items)

    assert [line.patient_cost for line in result.items] == [3.0, 25.0, 15.0, 12.5]
    assert result.items[0].match_method == "prefix"
    assert result.items[3].matched_key is None
    assert result.items[3].coverage.type == CoverageType.NOT_COVERED
    assert result.total_patient_cost == pytest.approx(55.5)


def test_compute_cost_with_empty_map_charges_full_price():
    result = compute_cost(None, [CostItem(medication="metformin", price=9.99)])

    assert result.total_patient_cost == pytest.approx(9.99)
