"""In-memory collaborator implementations, optionally seeded from JSON."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union
from uuid import uuid4

from policy_pulse.schemas.directory import PolicyRecord, UserRecord
from policy_pulse.schemas.impact import ImpactIndexRecord, ImpactReport
from policy_pulse.utils.logging import get_logger
from policy_pulse.utils.medications import policy_path

LOGGER = get_logger(__name__)


class InMemoryPolicyDirectory:
    """Policy directory backed by a dict keyed by policy id."""

    def __init__(self, policies: Iterable[Union[PolicyRecord, Dict[str, Any]]] = ()):
        self._policies: Dict[str, PolicyRecord] = {}
        for policy in policies:
            self.add(policy)

    def add(self, policy: Union[PolicyRecord, Dict[str, Any]]) -> PolicyRecord:
        record = policy if isinstance(policy, PolicyRecord) else PolicyRecord.model_validate(policy)
        self._policies[record.id] = record
        return record

    async def get_policy(self, policy_id: str) -> Optional[PolicyRecord]:
        return self._policies.get(policy_id)

    async def get_policy_by_file(self, file_ref: str) -> Optional[PolicyRecord]:
        for policy in self._policies.values():
            if policy.file_ref == file_ref:
                return policy
        return None

    async def list_policies(self) -> List[PolicyRecord]:
        return list(self._policies.values())


class InMemoryUserDirectory:
    """User directory backed by a dict keyed by user id."""

    def __init__(self, users: Iterable[Union[UserRecord, Dict[str, Any]]] = ()):
        self._users: Dict[str, UserRecord] = {}
        for user in users:
            self.add(user)

    def add(self, user: Union[UserRecord, Dict[str, Any]]) -> UserRecord:
        record = user if isinstance(user, UserRecord) else UserRecord.model_validate(user)
        self._users[record.id] = record
        return record

    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        return self._users.get(user_id)

    async def find_users_insured_on(self, policy_id: str) -> List[UserRecord]:
        return [user for user in self._users.values() if policy_id in user.insured_policy_ids()]


class InMemoryImpactReportStore:
    """Append-only report store; every save gets a fresh run id."""

    def __init__(self):
        self._reports: Dict[str, List[ImpactReport]] = {}
        self._index: List[ImpactIndexRecord] = []

    async def save_report(self, policy_id: str, report: ImpactReport) -> str:
        run_id = uuid4().hex
        stored = report.model_copy(update={"run_id": run_id}, deep=True)
        self._reports.setdefault(policy_id, []).append(stored)
        self._index.append(ImpactIndexRecord(
            policy_path=policy_path(policy_id),
            run_id=run_id,
            changed_medications=list(report.changed_medications),
            affected_count=report.affected_count,
            created_at=datetime.now(timezone.utc),
        ))
        LOGGER.info(
            f"Stored impact report {run_id} under policy {policy_id}",
            extra={"policy_id": policy_id, "run_id": run_id, "affected_count": report.affected_count},
        )
        return run_id

    async def list_reports(self, policy_id: str, limit: int = 1) -> List[ImpactReport]:
        """Most recent reports first."""
        reports = list(reversed(self._reports.get(policy_id, [])))
        reports.sort(key=lambda report: report.compared_at, reverse=True)
        return reports[:max(0, limit)]

    async def list_index(self, limit: int = 50) -> List[ImpactIndexRecord]:
        return list(reversed(self._index))[:max(0, limit)]


def load_seed_data(path: Path) -> Tuple[List[PolicyRecord], List[UserRecord]]:
    """Read ``{"policies": [...], "users": [...]}`` from a JSON file."""
    with open(path, "r", encoding="utf-8") as handle:
        payload = json.load(handle)

    policies = [PolicyRecord.model_validate(item) for item in payload.get("policies", [])]
    users = [UserRecord.model_validate(item) for item in payload.get("users", [])]
    LOGGER.info(
        f"Loaded seed data from {path}",
        extra={"policy_count": len(policies), "user_count": len(users)},
    )
    return policies, users
