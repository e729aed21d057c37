"""Impact Resolver.

Diffs the coverage maps of two policy versions and finds the insured users
whose medications are touched by the change.
"""

import asyncio
from datetime import datetime, timezone
from typing import List, Optional

from policy_pulse.core.exceptions import AppError, PolicyNotFoundError
from policy_pulse.repositories.base import (
    ImpactReportStore,
    PolicyDirectory,
    UserDirectory,
    find_users_insured_on_any,
)
from policy_pulse.schemas.coverage import CoverageDiff
from policy_pulse.schemas.directory import PolicyRecord, UserRecord
from policy_pulse.schemas.impact import (
    AffectedPatient,
    ImpactReport,
    MedicationImpact,
    PolicyDiffResult,
)
from policy_pulse.schemas.results import ServiceResult
from policy_pulse.services.coverage.coverage_diff_service import diff_coverage_maps
from policy_pulse.utils.logging import get_logger

LOGGER = get_logger(__name__)

NO_CHANGES_NOTE = "No coverage changes detected."


def find_affected_patients(users: List[UserRecord], diff: CoverageDiff) -> List[AffectedPatient]:
    """Users taking at least one changed medication, with a per-medication breakdown.

    Matching is exact on normalized names.
    """
    changed = set(diff.changed_medications)
    affected: List[AffectedPatient] = []

    for user in users:
        impacted = [med for med in user.normalized_medications() if med in changed]
        if not impacted:
            continue
        affected.append(AffectedPatient(
            user_id=user.id,
            name=user.name,
            email=user.email,
            medications_impacted=[
                MedicationImpact(
                    medication=med,
                    old=diff.details[med].old,
                    next=diff.details[med].next,
                )
                for med in impacted
            ],
        ))
    return affected


class ImpactResolver:
    """Runs coverage-impact analysis between two stored policy versions."""

    def __init__(
        self,
        policies: PolicyDirectory,
        users: UserDirectory,
        store: Optional[ImpactReportStore] = None,
    ):
        self.policies = policies
        self.users = users
        self.store = store

    async def _load_pair(self, old_policy_id: str, new_policy_id: str) -> tuple[PolicyRecord, PolicyRecord]:
        old_policy, new_policy = await asyncio.gather(
            self.policies.get_policy(old_policy_id),
            self.policies.get_policy(new_policy_id),
        )
        if old_policy is None:
            raise PolicyNotFoundError(f"Policy {old_policy_id} not found")
        if new_policy is None:
            raise PolicyNotFoundError(f"Policy {new_policy_id} not found")
        return old_policy, new_policy

    async def _load_pair_by_file(self, old_file: str, new_file: str) -> tuple[PolicyRecord, PolicyRecord]:
        old_policy, new_policy = await asyncio.gather(
            self.policies.get_policy_by_file(old_file),
            self.policies.get_policy_by_file(new_file),
        )
        if old_policy is None:
            raise PolicyNotFoundError(f"No policy stored for file {old_file}")
        if new_policy is None:
            raise PolicyNotFoundError(f"No policy stored for file {new_file}")
        return old_policy, new_policy

    async def run(
        self,
        old_policy_id: str,
        new_policy_id: str,
        scope_policy_id: Optional[str] = None,
        persist: bool = True,
    ) -> ServiceResult[ImpactReport]:
        """Find users affected by the coverage change from one policy version to another.

        Args:
            old_policy_id: Id of the previous policy version
            new_policy_id: Id of the new policy version
            scope_policy_id: Policy whose insured users are checked; defaults
                to users insured on either version
            persist: Whether to write the report to the store

        Returns:
            ServiceResult wrapping the ImpactReport, or a ``policy_not_found``
            failure
        """
        LOGGER.info(
            f"Resolving impact of {old_policy_id} -> {new_policy_id}",
            extra={
                "old_policy_id": old_policy_id,
                "new_policy_id": new_policy_id,
                "scope_policy_id": scope_policy_id,
            },
        )
        try:
            old_policy, new_policy = await self._load_pair(old_policy_id, new_policy_id)
        except AppError as e:
            LOGGER.warning(e.message, extra={"code": e.code})
            return ServiceResult.from_error(e)

        diff = diff_coverage_maps(old_policy.coverage_map, new_policy.coverage_map)
        report_scope = scope_policy_id or new_policy.id
        compared_at = datetime.now(timezone.utc)

        if not diff.has_changes:
            report = ImpactReport(
                old_policy=old_policy.to_summary(),
                new_policy=new_policy.to_summary(),
                scope_policy_id=report_scope,
                compared_at=compared_at,
                note=NO_CHANGES_NOTE,
            )
            return ServiceResult.success(await self._persist(report_scope, report, persist))

        scoping_ids = [scope_policy_id] if scope_policy_id else [old_policy.id, new_policy.id]
        users = await find_users_insured_on_any(self.users, scoping_ids)
        affected = find_affected_patients(users, diff)

        report = ImpactReport(
            changed_medications=diff.changed_medications,
            change_details=diff.details,
            affected_count=len(affected),
            affected_patients=affected,
            old_policy=old_policy.to_summary(),
            new_policy=new_policy.to_summary(),
            scope_policy_id=report_scope,
            compared_at=compared_at,
        )
        LOGGER.info(
            f"Impact resolved: {len(diff.changed_medications)} changed medications, "
            f"{len(affected)} affected patients",
            extra={
                "changed_count": len(diff.changed_medications),
                "users_checked": len(users),
                "affected_count": len(affected),
            },
        )
        return ServiceResult.success(await self._persist(report_scope, report, persist))

    async def _persist(self, policy_id: str, report: ImpactReport, persist: bool) -> ImpactReport:
        if not persist or self.store is None:
            return report
        run_id = await self.store.save_report(policy_id, report)
        return report.model_copy(update={"run_id": run_id})

    async def diff_policies(self, old_policy_id: str, new_policy_id: str) -> ServiceResult[PolicyDiffResult]:
        """Coverage diff of two stored policies, looked up by id."""
        try:
            old_policy, new_policy = await self._load_pair(old_policy_id, new_policy_id)
        except AppError as e:
            return ServiceResult.from_error(e)
        return ServiceResult.success(self._diff_result(old_policy, new_policy))

    async def diff_policies_by_file(self, old_file: str, new_file: str) -> ServiceResult[PolicyDiffResult]:
        """Coverage diff of two stored policies, looked up by source file reference."""
        try:
            old_policy, new_policy = await self._load_pair_by_file(old_file, new_file)
        except AppError as e:
            return ServiceResult.from_error(e)
        return ServiceResult.success(self._diff_result(old_policy, new_policy))

    @staticmethod
    def _diff_result(old_policy: PolicyRecord, new_policy: PolicyRecord) -> PolicyDiffResult:
        diff = diff_coverage_maps(old_policy.coverage_map, new_policy.coverage_map)
        return PolicyDiffResult(
            changed_medications=diff.changed_medications,
            details=diff.details,
            old=old_policy.to_summary(),
            next=new_policy.to_summary(),
        )

    async def list_reports(self, policy_id: str, limit: int = 1) -> List[ImpactReport]:
        if self.store is None:
            return []
        return await self.store.list_reports(policy_id, limit=limit)
