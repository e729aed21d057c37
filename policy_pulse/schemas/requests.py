"""Request bodies accepted by the HTTP API.

Field names follow the camelCase used by existing clients; snake_case is
accepted too.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from policy_pulse.schemas.coverage import CostItem
from policy_pulse.schemas.impact import AffectedPatient, ImpactReport


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AffectedMedsRequest(_CamelModel):
    old_policy_id: str = Field(..., alias="oldPolicyId", min_length=1)
    new_policy_id: str = Field(..., alias="newPolicyId", min_length=1)
    insured_policy_id: Optional[str] = Field(
        None, alias="insuredPolicyId", description="Restrict the affected users to this policy"
    )
    persist: bool = True


class PolicyDiffRequest(_CamelModel):
    """Either both policy ids or both file references."""

    old_policy_id: Optional[str] = Field(None, alias="oldPolicyId")
    new_policy_id: Optional[str] = Field(None, alias="newPolicyId")
    old_file: Optional[str] = Field(None, alias="oldFile")
    new_file: Optional[str] = Field(None, alias="newFile")

    @model_validator(mode="after")
    def check_pair(self) -> "PolicyDiffRequest":
        by_id = bool(self.old_policy_id and self.new_policy_id)
        by_file = bool(self.old_file and self.new_file)
        if not by_id and not by_file:
            raise ValueError("Provide oldPolicyId and newPolicyId, or oldFile and newFile")
        return self


class BestByCoverageRequest(_CamelModel):
    medications: Optional[List[str]] = None
    user_id: Optional[str] = Field(None, alias="userId")
    candidate_files: Optional[List[str]] = Field(None, alias="candidateFiles")
    top_k: Optional[int] = Field(None, alias="topK", ge=1)


class CostRequest(_CamelModel):
    items: List[CostItem] = Field(..., min_length=1)


class NotificationPreviewRequest(_CamelModel):
    """Render messages for every patient in a report, or for a single patient."""

    report: Optional[ImpactReport] = None
    patient: Optional[AffectedPatient] = None
    subject: Optional[str] = Field(None, min_length=3)

    @model_validator(mode="after")
    def check_source(self) -> "NotificationPreviewRequest":
        if self.report is None and self.patient is None:
            raise ValueError("Provide either report or patient")
        return self
