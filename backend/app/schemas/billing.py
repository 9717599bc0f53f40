"""Pydantic schemas for diagnoses, billing programs and program matches."""

from pydantic import BaseModel, Field, field_validator

from app.schemas.base import DiagnosisRole
from app.schemas.template import MatchResult


class Diagnosis(BaseModel):
    """A coded diagnosis attached to a patient."""

    code: str = Field(..., min_length=1, description="ICD-10 code, e.g. M79.3")
    display: str = ""
    role: DiagnosisRole = DiagnosisRole.SECONDARY
    coding_system: str = "ICD-10"

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        code = value.strip().upper()
        if not code:
            raise ValueError("diagnosis code must not be blank")
        return code


class BillingProgramDefinition(BaseModel):
    """Catalog entry describing a billable care program.

    ``diagnosis_match_rules`` holds exact codes, category prefixes
    ("M79") or wildcard patterns ("J44.*").
    """

    program_type: str = Field(..., min_length=1, description="RPM, RTM, CCM, ...")
    billing_program_code: str = Field(..., min_length=1)
    name: str = ""
    cpt_codes: list[str] = Field(default_factory=list)
    diagnosis_match_rules: list[str] = Field(default_factory=list)
    category: str | None = None
    display_order: int = 0
    is_active: bool = True


class DiagnosisEvidence(BaseModel):
    """A patient diagnosis that satisfied one of a program's rules."""

    code: str
    display: str = ""
    role: DiagnosisRole
    rule: str
    weight: int


class ProgramMatch(MatchResult):
    """A billing program candidate with the diagnoses that support it.

    ``target_id`` is the program type.
    """

    billing_program_code: str
    program_name: str = ""
    cpt_codes: list[str] = Field(default_factory=list)
    category: str | None = None
    evidence: list[DiagnosisEvidence] = Field(default_factory=list)
