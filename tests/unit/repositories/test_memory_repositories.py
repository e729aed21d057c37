import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from policy_pulse.repositories.base import find_users_insured_on_any
from policy_pulse.repositories.memory import InMemoryImpactReportStore, load_seed_data
from policy_pulse.schemas.directory import PolicySummary, UserRecord
from policy_pulse.schemas.impact import ImpactReport


def _report(affected_count: int = 0) -> ImpactReport:
    return ImpactReport(
        changed_medications=["metformin"],
        affected_count=affected_count,
        old_policy=PolicySummary(id="basic-v1"),
        new_policy=PolicySummary(id="basic-v2"),
        scope_policy_id="basic-v2",
        compared_at=datetime.now(timezone.utc),
    )


@pytest.mark.asyncio
async def test_policy_directory_lookups(policy_directory):
    by_id = await policy_directory.get_policy("basic-v2")
    by_file = await policy_directory.get_policy_by_file("plus_v1.pdf")

    assert by_id.name == "Basic Care"
    assert by_id.file_ref == "basic_v2.pdf"
    assert by_file.id == "plus-v1"
    assert await policy_directory.get_policy("missing") is None
    assert len(await policy_directory.list_policies()) == 3


@pytest.mark.asyncio
async def test_user_directory_reads_legacy_illness_field(user_directory):
    bob = await user_directory.get_user("u-bob")

    assert bob.normalized_medications() == ["lisinopril", "atorvastatin"]
    assert bob.insured_policy_ids() == ["basic-v1"]


@pytest.mark.asyncio
async def test_users_insured_on_policy(user_directory):
    users = await user_directory.find_users_insured_on("basic-v2")

    assert [user.id for user in users] == ["u-alice"]


def test_flat_medication_list_wins_over_illnesses():
    user = UserRecord.model_validate({
        "id": "u1",
        "illnesses": [{"medications": ["aspirin"]}],
        "medicationsFlat": ["Metformin", "metformin"],
    })

    assert user.normalized_medications() == ["metformin"]


@pytest.mark.asyncio
async def test_store_assigns_fresh_run_ids_and_indexes():
    store = InMemoryImpactReportStore()

    first = await store.save_report("basic-v2", _report(1))
    second = await store.save_report("basic-v2", _report(2))
    reports = await store.list_reports("basic-v2", limit=5)
    index = await store.list_index()

    assert first != second
    assert [report.run_id for report in reports] == [second, first]
    assert index[0].policy_path == "policies/basic-v2"
    assert index[0].affected_count == 2
    assert await store.list_reports("other") == []


@pytest.mark.asyncio
async def test_fan_out_deduplicates_and_skips_failed_lookups():
    alice = UserRecord(id="u-alice")
    bob = UserRecord(id="u-bob")
    directory = AsyncMock()

    async def lookup(policy_id):
        if policy_id == "broken":
            raise ConnectionError("directory unavailable")
        return {"p1": [alice, bob], "p2": [bob]}[policy_id]

    directory.find_users_insured_on.side_effect = lookup

    users = await find_users_insured_on_any(directory, ["p1", "broken", "p2", "p1"])

    assert [user.id for user in users] == ["u-alice", "u-bob"]
    assert directory.find_users_insured_on.await_count == 3


def test_load_seed_data(tmp_path, sample_policies, sample_users):
    seed_file = tmp_path / "seed.json"
    seed_file.write_text(json.dumps({"policies": sample_policies, "users": sample_users}))

    policies, users = load_seed_data(seed_file)

    assert [policy.id for policy in policies] == ["basic-v1", "basic-v2", "plus-v1"]
    assert users[2].role == "hospital"
