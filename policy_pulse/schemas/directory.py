"""Records returned by the policy and user directory collaborators."""

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from policy_pulse.utils.medications import (
    policy_id_from_ref,
    unique_medication_names,
)


class PolicyRecord(BaseModel):
    """A stored policy version.

    ``coverage_map`` is kept raw: it can be any of the historical shapes and
    is only interpreted by the coverage normalizer.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    name: Optional[str] = None
    summary: Optional[str] = None
    version: Optional[int] = None
    effective_date: Optional[str] = Field(
        None, validation_alias=AliasChoices("effective_date", "effectiveDate")
    )
    coverage_map: Any = Field(
        default_factory=dict, validation_alias=AliasChoices("coverage_map", "coverageMap")
    )
    file_ref: Optional[str] = Field(
        None, validation_alias=AliasChoices("file_ref", "beFileName", "fileRef")
    )
    insurance_company_ref: Optional[str] = Field(
        None, validation_alias=AliasChoices("insurance_company_ref", "insuranceCompanyRef")
    )

    def to_summary(self) -> "PolicySummary":
        return PolicySummary(
            id=self.id,
            name=self.name,
            version=self.version,
            effective_date=self.effective_date,
            file_ref=self.file_ref,
        )


class PolicySummary(BaseModel):
    """Identifying fields of a policy carried inside reports and rankings."""

    id: str
    name: Optional[str] = None
    version: Optional[int] = None
    effective_date: Optional[str] = None
    file_ref: Optional[str] = None


class Illness(BaseModel):
    """An illness on a patient profile with the medications taken for it."""

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    medications: list[Any] = Field(default_factory=list)


class UserRecord(BaseModel):
    """A user profile as exposed by the user directory."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    role: str = "patient"
    # "ilnesses" is a misspelling still present on older profiles
    illnesses: list[Illness] = Field(
        default_factory=list, validation_alias=AliasChoices("illnesses", "ilnesses")
    )
    insured_at: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("insured_at", "insuredAt")
    )
    medications_flat: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("medications_flat", "medicationsFlat")
    )
    current_policy_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("current_policy_id", "currentPolicyId")
    )

    def raw_medications(self) -> list[str]:
        """Medication strings across all illnesses, as entered."""
        return [
            med
            for illness in self.illnesses
            for med in illness.medications
            if isinstance(med, str) and med.strip()
        ]

    def normalized_medications(self) -> list[str]:
        """Normalized, de-duplicated medication names.

        A precomputed ``medications_flat`` list wins over the illnesses.
        """
        if self.medications_flat:
            return unique_medication_names(self.medications_flat)
        return unique_medication_names(self.raw_medications())

    def insured_policy_ids(self) -> list[str]:
        ids = [policy_id_from_ref(ref) for ref in self.insured_at]
        return [policy_id for policy_id in ids if policy_id]
