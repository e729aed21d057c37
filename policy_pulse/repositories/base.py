"""Contracts for the directories and stores the core reads from and writes to.

The core never talks to a database itself; it is handed objects satisfying
these protocols and awaits them at the boundary.
"""

import asyncio
from typing import List, Optional, Protocol, Sequence

from policy_pulse.schemas.directory import PolicyRecord, UserRecord
from policy_pulse.schemas.impact import ImpactIndexRecord, ImpactReport
from policy_pulse.utils.logging import get_logger

LOGGER = get_logger(__name__)


class PolicyDirectory(Protocol):
    """Read access to stored policy versions."""

    async def get_policy(self, policy_id: str) -> Optional[PolicyRecord]:
        ...

    async def get_policy_by_file(self, file_ref: str) -> Optional[PolicyRecord]:
        ...

    async def list_policies(self) -> List[PolicyRecord]:
        ...


class UserDirectory(Protocol):
    """Read access to user profiles."""

    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        ...

    async def find_users_insured_on(self, policy_id: str) -> List[UserRecord]:
        ...


class ImpactReportStore(Protocol):
    """Append-only storage for impact reports.

    ``save_report`` must create a new, independently identified record on
    every call and never overwrite an earlier run.
    """

    async def save_report(self, policy_id: str, report: ImpactReport) -> str:
        ...

    async def list_reports(self, policy_id: str, limit: int = 1) -> List[ImpactReport]:
        ...

    async def list_index(self, limit: int = 50) -> List[ImpactIndexRecord]:
        ...


async def find_users_insured_on_any(
    directory: UserDirectory,
    policy_ids: Sequence[str],
) -> List[UserRecord]:
    """Fetch users insured on any of the given policies.

    One lookup per policy runs concurrently; a failed lookup is logged and
    skipped without discarding the others. Users are de-duplicated by id in
    first-seen order.
    """
    unique_ids = list(dict.fromkeys(policy_id for policy_id in policy_ids if policy_id))
    results = await asyncio.gather(
        *(directory.find_users_insured_on(policy_id) for policy_id in unique_ids),
        return_exceptions=True,
    )

    users: List[UserRecord] = []
    seen: set[str] = set()
    for policy_id, result in zip(unique_ids, results):
        if isinstance(result, BaseException):
            LOGGER.warning(
                f"User lookup failed for policy {policy_id}: {result}",
                extra={"policy_id": policy_id, "error_type": type(result).__name__},
            )
            continue
        for user in result:
            if user.id not in seen:
                seen.add(user.id)
                users.append(user)
    return users
