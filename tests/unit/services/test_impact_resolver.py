import pytest
from unittest.mock import AsyncMock

from policy_pulse.repositories.memory import InMemoryPolicyDirectory, InMemoryUserDirectory
from policy_pulse.schemas.coverage import CoverageType
from policy_pulse.schemas.directory import UserRecord
from policy_pulse.services.impact.impact_resolver import NO_CHANGES_NOTE, ImpactResolver


@pytest.fixture
def resolver(policy_directory, user_directory, report_store):
    return ImpactResolver(policy_directory, user_directory, report_store)


@pytest.mark.asyncio
async def test_scoped_run_finds_patient_taking_changed_medication(resolver, report_store):
    result = await resolver.run("basic-v1", "basic-v2", scope_policy_id="basic-v2")

    assert result.ok
    report = result.data
    assert report.changed_medications == ["metformin"]
    assert report.affected_count == 1
    patient = report.affected_patients[0]
    assert patient.user_id == "u-alice"
    assert [impact.medication for impact in patient.medications_impacted] == ["metformin"]
    assert patient.medications_impacted[0].old.type == CoverageType.COVERED
    assert patient.medications_impacted[0].next.percent == 50.0
    assert report.run_id is not None

    stored = await report_store.list_reports("basic-v2")
    assert stored[0].run_id == report.run_id


@pytest.mark.asyncio
async def test_unscoped_run_checks_users_of_both_versions(resolver):
    result = await resolver.run("basic-v1", "plus-v1")

    assert result.ok
    assert result.data.changed_medications == ["atorvastatin"]
    assert [patient.user_id for patient in result.data.affected_patients] == ["u-bob"]
    assert result.data.scope_policy_id == "plus-v1"


@pytest.mark.asyncio
async def test_identical_policies_give_zero_impact_report(resolver, report_store):
    result = await resolver.run("basic-v2", "basic-v2", persist=True)

    assert result.ok
    assert result.data.affected_count == 0
    assert result.data.changed_medications == []
    assert result.data.note == NO_CHANGES_NOTE
    assert len(await report_store.list_reports("basic-v2")) == 1


@pytest.mark.asyncio
async def test_each_run_is_stored_separately(resolver, report_store):
    first = await resolver.run("basic-v1", "basic-v2")
    second = await resolver.run("basic-v1", "basic-v2")

    assert first.data.run_id != second.data.run_id
    assert len(await report_store.list_reports("basic-v2", limit=10)) == 2


@pytest.mark.asyncio
async def test_run_without_persist_leaves_store_untouched(resolver, report_store):
    result = await resolver.run("basic-v1", "basic-v2", persist=False)

    assert result.data.run_id is None
    assert await report_store.list_index() == []


@pytest.mark.asyncio
async def test_missing_policy_is_a_failure(resolver):
    result = await resolver.run("basic-v1", "nope")

    assert not result.ok
    assert result.error.code == "policy_not_found"


@pytest.mark.asyncio
async def test_failed_user_lookup_is_skipped(policy_directory):
    users = AsyncMock()

    async def lookup(policy_id):
        if policy_id == "basic-v1":
            raise TimeoutError("user directory timed out")
        return [UserRecord(id="u-dana", medicationsFlat=["metformin"])]

    users.find_users_insured_on.side_effect = lookup
    resolver = ImpactResolver(policy_directory, users)

    result = await resolver.run("basic-v1", "basic-v2")

    assert result.ok
    assert [patient.user_id for patient in result.data.affected_patients] == ["u-dana"]


@pytest.mark.asyncio
async def test_matching_is_exact_on_normalized_names():
    policies = InMemoryPolicyDirectory([
        {"id": "old", "coverageMap": {"metformin 500mg": 100}},
        {"id": "new", "coverageMap": {"metformin 500mg": 40}},
    ])
    users = InMemoryUserDirectory([
        {"id": "exact", "medicationsFlat": ["Metformin  500MG"], "insuredAt": ["policies/new"]},
        {"id": "partial", "medicationsFlat": ["metformin"], "insuredAt": ["policies/new"]},
    ])

    result = await ImpactResolver(policies, users).run("old", "new")

    assert [patient.user_id for patient in result.data.affected_patients] == ["exact"]


@pytest.mark.asyncio
async def test_diff_policies_by_id_and_file(resolver):
    by_id = await resolver.diff_policies("basic-v1", "basic-v2")
    by_file = await resolver.diff_policies_by_file("basic_v1.pdf", "basic_v2.pdf")
    missing = await resolver.diff_policies_by_file("basic_v1.pdf", "nope.pdf")

    assert by_id.data.changed_medications == ["metformin"]
    assert by_file.data.changed_medications == by_id.data.changed_medications
    assert by_file.data.next.id == "basic-v2"
    assert missing.error.code == "policy_not_found"
