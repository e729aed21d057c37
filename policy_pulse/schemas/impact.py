"""Schemas for impact reports and plan-change notifications."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from policy_pulse.schemas.coverage import CoverageChange, CoverageEntry
from policy_pulse.schemas.directory import PolicySummary


class MedicationImpact(BaseModel):
    """Before/after coverage for one medication a patient takes."""

    medication: str
    old: Optional[CoverageEntry] = None
    next: Optional[CoverageEntry] = None


class AffectedPatient(BaseModel):
    """An insured user whose medications are touched by a coverage change."""

    user_id: str
    name: Optional[str] = None
    email: Optional[str] = None
    medications_impacted: list[MedicationImpact] = Field(default_factory=list)


class ImpactReport(BaseModel):
    """Result of one impact-resolver run. Never updated after it is written."""

    run_id: Optional[str] = Field(None, description="Store-assigned id; None when not persisted")
    changed_medications: list[str] = Field(default_factory=list)
    change_details: dict[str, CoverageChange] = Field(default_factory=dict)
    affected_count: int = 0
    affected_patients: list[AffectedPatient] = Field(default_factory=list)
    old_policy: PolicySummary
    new_policy: PolicySummary
    scope_policy_id: str = Field(..., description="Policy whose insured population was checked")
    compared_at: datetime
    note: Optional[str] = None


class ImpactIndexRecord(BaseModel):
    """Flat listing record written next to each stored report."""

    policy_path: str
    run_id: str
    changed_medications: list[str] = Field(default_factory=list)
    affected_count: int = 0
    created_at: datetime


class PolicyDiffResult(BaseModel):
    """Coverage diff between two stored policies with their summaries."""

    changed_medications: list[str] = Field(default_factory=list)
    details: dict[str, CoverageChange] = Field(default_factory=dict)
    old: PolicySummary
    next: PolicySummary


class PlanChangeMessage(BaseModel):
    """Rendered plan-change notification ready for a mail collaborator."""

    to: Optional[str] = None
    patient_id: Optional[str] = None
    subject: str
    text: str
    html: str
    headers: dict[str, str] = Field(default_factory=dict)
