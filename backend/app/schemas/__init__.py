"""Pydantic schemas for the Care Continuity Engine."""

from app.schemas.base import (
    DiagnosisRole,
    EnrollmentStatus,
    ObservationContext,
    ObservationSource,
    SuggestionKind,
    SuggestionSource,
    SuggestionStatus,
    ValueType,
)
from app.schemas.billing import (
    BillingProgramDefinition,
    Diagnosis,
    DiagnosisEvidence,
    ProgramMatch,
)
from app.schemas.observation import (
    MetricDefinition,
    NormalRange,
    Observation,
    ObservationValue,
)
from app.schemas.suggestion import (
    ApproveSuggestionRequest,
    Enrollment,
    GenerateSuggestionRequest,
    RejectSuggestionRequest,
    Suggestion,
    SuggestionHistoryPage,
    SuggestionResponse,
)
from app.schemas.template import (
    AssessmentTemplate,
    CompletedAssessment,
    ContinuityOverview,
    ContinuityRecommendation,
    MatchResult,
    ReusableMetric,
    ReuseAdvice,
    TemplateItem,
    TemplateMatch,
)

__all__ = [
    # Enums
    "DiagnosisRole",
    "EnrollmentStatus",
    "ObservationContext",
    "ObservationSource",
    "SuggestionKind",
    "SuggestionSource",
    "SuggestionStatus",
    "ValueType",
    # Observation
    "MetricDefinition",
    "NormalRange",
    "Observation",
    "ObservationValue",
    # Template
    "AssessmentTemplate",
    "CompletedAssessment",
    "TemplateItem",
    "MatchResult",
    "TemplateMatch",
    "ReusableMetric",
    "ContinuityRecommendation",
    "ReuseAdvice",
    "ContinuityOverview",
    # Billing
    "BillingProgramDefinition",
    "Diagnosis",
    "DiagnosisEvidence",
    "ProgramMatch",
    # Suggestion
    "Suggestion",
    "Enrollment",
    "ApproveSuggestionRequest",
    "RejectSuggestionRequest",
    "GenerateSuggestionRequest",
    "SuggestionHistoryPage",
    "SuggestionResponse",
]
