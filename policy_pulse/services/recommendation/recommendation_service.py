"""Recommendation service.

Resolves users and candidate policies through the directories and hands
them to the policy scorer.
"""

import asyncio
from typing import Any, List, Optional, Sequence

from policy_pulse.config import settings
from policy_pulse.core.exceptions import PolicyNotFoundError, UserNotFoundError
from policy_pulse.repositories.base import PolicyDirectory, UserDirectory
from policy_pulse.schemas.directory import PolicyRecord, UserRecord
from policy_pulse.schemas.recommendation import BetterOptions, CoverageRanking
from policy_pulse.schemas.results import ServiceResult
from policy_pulse.services.recommendation.policy_scorer import (
    latest_versions,
    rank_policies,
    recommend_better_than_current,
)
from policy_pulse.utils.logging import get_logger
from policy_pulse.utils.medications import policy_id_from_ref, unique_medication_names

LOGGER = get_logger(__name__)

NOT_A_PATIENT = "not_a_patient"
CURRENT_POLICY_UNRESOLVED = "current_policy_unresolved"
NO_MEDICATIONS = "no_medications"


def resolve_current_policy_id(user: UserRecord, override_id: Optional[str] = None) -> Optional[str]:
    """Current policy id: explicit override, then the user's field, then the last insured ref."""
    if override_id:
        return override_id
    if user.current_policy_id:
        return str(user.current_policy_id)
    if user.insured_at:
        return policy_id_from_ref(user.insured_at[-1])
    return None


class RecommendationService:
    """Finds policies that cover a user's medications better."""

    def __init__(self, policies: PolicyDirectory, users: UserDirectory):
        self.policies = policies
        self.users = users

    async def better_than_current(
        self,
        user_id: str,
        min_improvement: float = 0.0,
        current_policy_id: Optional[str] = None,
    ) -> ServiceResult[BetterOptions]:
        """Latest policy versions that beat the user's current policy.

        Args:
            user_id: Patient to recommend for
            min_improvement: Minimum relative score improvement, clamped at 0
            current_policy_id: Optional override of the user's current policy

        Returns:
            ServiceResult wrapping BetterOptions
        """
        user = await self.users.get_user(user_id)
        if user is None:
            return ServiceResult.from_error(UserNotFoundError(f"User {user_id} not found"))
        if user.role != "patient":
            return ServiceResult.failure(NOT_A_PATIENT, f"User {user_id} is not a patient")

        resolved_id = resolve_current_policy_id(user, current_policy_id)
        if not resolved_id:
            return ServiceResult.failure(
                CURRENT_POLICY_UNRESOLVED,
                "Cannot determine the current policy; pass currentPolicyId or set it on the user",
                details={"user_id": user_id},
            )

        current, all_policies = await asyncio.gather(
            self.policies.get_policy(resolved_id),
            self.policies.list_policies(),
        )
        if current is None:
            return ServiceResult.from_error(PolicyNotFoundError(f"Current policy {resolved_id} not found"))

        medications = user.normalized_medications()
        threshold = max(0.0, min_improvement)
        current_ranked, better = recommend_better_than_current(
            current,
            latest_versions(all_policies),
            medications,
            threshold,
        )

        LOGGER.info(
            f"Found {len(better)} better options for user {user_id}",
            extra={"user_id": user_id, "current_policy_id": resolved_id, "min_improvement": threshold},
        )
        return ServiceResult.success(BetterOptions(
            user_id=user_id,
            medications=medications,
            min_improvement=threshold,
            resolved_current_policy_id=resolved_id,
            current=current_ranked,
            count=len(better),
            better_options=better,
        ))

    async def _load_candidates(self, candidate_files: Sequence[str]) -> tuple[List[PolicyRecord], List[str]]:
        results = await asyncio.gather(
            *(self.policies.get_policy_by_file(file_ref) for file_ref in candidate_files),
            return_exceptions=True,
        )
        loaded: List[PolicyRecord] = []
        skipped: List[str] = []
        for file_ref, result in zip(candidate_files, results):
            if isinstance(result, BaseException):
                LOGGER.warning(
                    f"Failed to load candidate {file_ref}: {result}",
                    extra={"file_ref": file_ref, "error_type": type(result).__name__},
                )
                skipped.append(file_ref)
            elif result is None:
                LOGGER.warning(f"Candidate {file_ref} not found", extra={"file_ref": file_ref})
                skipped.append(file_ref)
            else:
                loaded.append(result)
        return loaded, skipped

    async def best_by_coverage(
        self,
        medications: Optional[Sequence[Any]] = None,
        user_id: Optional[str] = None,
        candidate_files: Optional[Sequence[str]] = None,
        top_k: Optional[int] = None,
    ) -> ServiceResult[CoverageRanking]:
        """Rank policies by how well they cover a medication list.

        Explicit ``medications`` win over the user's profile. Without
        ``candidate_files`` the latest version of every stored policy competes.
        """
        meds = unique_medication_names(medications or [])
        if not meds and user_id:
            user = await self.users.get_user(user_id)
            if user is None:
                return ServiceResult.from_error(UserNotFoundError(f"User {user_id} not found"))
            meds = user.normalized_medications()
        if not meds:
            return ServiceResult.failure(NO_MEDICATIONS, "No medications to rank policies against")

        if candidate_files:
            candidates, skipped = await self._load_candidates(list(dict.fromkeys(candidate_files)))
        else:
            candidates, skipped = latest_versions(await self.policies.list_policies()), []

        ranking = rank_policies(candidates, meds, top_k=top_k or settings.recommendation_top_k)
        LOGGER.info(
            f"Ranked {len(candidates)} policies by coverage",
            extra={"medication_count": len(meds), "skipped_count": len(skipped)},
        )
        return ServiceResult.success(CoverageRanking(medications=meds, ranking=ranking, skipped=skipped))
