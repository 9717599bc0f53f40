"""Pydantic schemas for assessment templates and template scoring."""

from datetime import datetime

from pydantic import BaseModel, Field

from app.schemas.observation import Observation


class TemplateItem(BaseModel):
    """A metric slot on an assessment template."""

    metric_id: str
    is_required: bool = True
    display_order: int = 0


class AssessmentTemplate(BaseModel):
    """Assessment template reference data.

    Items are kept in display order.
    """

    id: str
    name: str
    is_standardized: bool = False
    items: list[TemplateItem] = Field(default_factory=list)


class MatchResult(BaseModel):
    """How well the evidence on hand satisfies a target's requirements.

    ``match_score`` is ``round(100 * |matched| / |total|)`` for templates
    and a role-weighted percentage for billing programs.
    """

    target_id: str
    matched_items: list[str] = Field(default_factory=list)
    unmatched_items: list[str] = Field(default_factory=list)
    match_score: int = Field(0, ge=0, le=100)


class TemplateMatch(MatchResult):
    """Template coverage against a patient's fresh metric set."""

    template_name: str
    is_standardized: bool = False
    scored: bool = True
    weighted_score: int = Field(0, ge=0, le=100, description="Coverage with required items weighted 2x")
    missing_required: list[str] = Field(default_factory=list)
    missing_optional: list[str] = Field(default_factory=list)


class CompletedAssessment(BaseModel):
    """A recently completed assessment of the same template."""

    id: str
    patient_id: str
    template_id: str
    clinician_id: str | None = None
    completed_at: datetime


class ReusableMetric(BaseModel):
    """A template item that can be pre-populated from an existing observation."""

    metric_id: str
    metric_key: str | None = None
    display_name: str | None = None
    unit: str | None = None
    observation: Observation
    expires_at: datetime = Field(..., description="When the observation becomes stale")


class ContinuityRecommendation(BaseModel):
    """Operator-facing hint derived from reuse advice."""

    type: str
    priority: str
    message: str
    action: str


class ReuseAdvice(BaseModel):
    """What can be reused and what must be re-collected for a new assessment."""

    patient_id: str
    template_id: str
    validity_hours: float
    reusable_assessments: list[CompletedAssessment] = Field(
        default_factory=list, description="Completions of this template inside the window, newest first"
    )
    reusable: list[ReusableMetric] = Field(default_factory=list)
    must_collect: list[str] = Field(default_factory=list)
    optional_missing: list[str] = Field(default_factory=list)
    expected_continuity_pct: int = Field(0, ge=0, le=100)
    match: TemplateMatch
    recommendations: list[ContinuityRecommendation] = Field(default_factory=list)


class ContinuityOverview(BaseModel):
    """All scored templates ranked against a patient's fresh metrics."""

    patient_id: str
    validity_hours: float
    fresh_metric_ids: list[str] = Field(default_factory=list)
    ranked_templates: list[TemplateMatch] = Field(default_factory=list)
    advice: ReuseAdvice | None = None
