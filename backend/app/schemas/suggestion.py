"""Pydantic schemas for suggestions, enrollments and review requests."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.base import EnrollmentStatus, SuggestionKind, SuggestionSource, SuggestionStatus
from app.schemas.billing import DiagnosisEvidence, ProgramMatch
from app.schemas.template import TemplateMatch


class Suggestion(BaseModel):
    """A generated suggestion and its review state."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    patient_id: str
    kind: SuggestionKind
    status: SuggestionStatus
    candidate_programs: list[ProgramMatch | TemplateMatch] = Field(
        default_factory=list,
        description="Ranked match results the reviewer picks from",
    )
    matched_diagnoses: list[DiagnosisEvidence] = Field(default_factory=list)
    metadata: dict = Field(default_factory=dict, validation_alias="extra_metadata")
    match_score: int = 0
    selected_program_type: str | None = None
    rejection_reason: str | None = None
    reviewed_at: datetime | None = None
    reviewed_by: str | None = None
    created_enrollment_ids: list[str] = Field(
        default_factory=list,
        description="Enrollments created on approval; at least one for an approved BILLING_PACKAGE, always empty for CONTINUITY",
    )
    source_type: SuggestionSource = SuggestionSource.MANUAL
    source_id: str | None = None
    created_at: datetime | None = None

    @property
    def candidate_program_types(self) -> list[str]:
        return [c.target_id for c in self.candidate_programs]


class Enrollment(BaseModel):
    """A program enrollment created by approving a suggestion."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    patient_id: str
    program_type: str
    billing_program_code: str
    status: EnrollmentStatus
    start_date: date
    clinician_id: str | None = None
    suggestion_id: str | None = None
    notes: str | None = None


class ApproveSuggestionRequest(BaseModel):
    """Request body for approving a suggestion."""

    reviewer_id: str = Field(..., min_length=1, description="Clinician approving the suggestion")
    selected_program_type: str | None = Field(
        None,
        description="Program type picked from the candidate list; required",
    )
    clinician_id: str | None = Field(None, description="Clinician to own the enrollment; defaults to the reviewer")
    start_date: date | None = Field(None, description="Enrollment start date; defaults to today")


class RejectSuggestionRequest(BaseModel):
    """Request body for rejecting a suggestion."""

    reviewer_id: str = Field(..., min_length=1, description="Clinician rejecting the suggestion")
    rejection_reason: str | None = Field(None, description="Why the suggestion was rejected; required")


class GenerateSuggestionRequest(BaseModel):
    """Request body for generating a billing-package suggestion."""

    supported_programs: list[str] | None = Field(
        None,
        description="Program types the organization bills for; all when omitted",
    )
    source_type: SuggestionSource = SuggestionSource.MANUAL
    source_id: str | None = Field(None, description="Triggering record, e.g. an encounter note id")


class SuggestionHistoryPage(BaseModel):
    """One page of suggestion history, newest first."""

    items: list[Suggestion] = Field(default_factory=list)
    total: int = Field(..., ge=0, description="Suggestions matching the filters across all pages")
    limit: int
    offset: int
    pages: int = Field(..., ge=0)


class SuggestionResponse(BaseModel):
    """Envelope for review actions."""

    suggestion: Suggestion | None = None
    message: str
