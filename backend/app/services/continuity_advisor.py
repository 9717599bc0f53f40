"""Reuse/Continuity Advisor.

Tells the operator starting a new assessment which template items can be
pre-populated from fresh observations and which must be collected again.
Combines the MetricSet Resolver with the Template Match Scorer; it never
writes anything.
"""

import logging
from collections.abc import Mapping
from datetime import datetime, timedelta

from app.core.config import settings
from app.schemas.observation import Observation
from app.schemas.template import (
    AssessmentTemplate,
    ContinuityOverview,
    ContinuityRecommendation,
    ReusableMetric,
    ReuseAdvice,
)
from app.services.clinical_data import ClinicalDataServiceInterface
from app.services.metric_resolver import (
    MetricSetResolver,
    default_validity_window,
    normalize_as_of,
    window_start,
)
from app.services.template_scorer import TemplateMatchScorer, get_template_scorer

logger = logging.getLogger(__name__)


def build_recommendations(advice: ReuseAdvice) -> list[ContinuityRecommendation]:
    """Derive operator hints from reuse advice, most urgent first."""
    recommendations = []

    if advice.reusable_assessments:
        recommendations.append(ContinuityRecommendation(
            type="assessment_reuse",
            priority="high",
            message=f"{len(advice.reusable_assessments)} recent assessment(s) available for reuse",
            action="Consider reusing recent assessment data",
        ))

    if advice.must_collect:
        recommendations.append(ContinuityRecommendation(
            type="complete_required",
            priority="high",
            message=f"{len(advice.must_collect)} required metric(s) have no fresh observation",
            action="Collect the missing required metrics",
        ))

    if advice.reusable:
        recommendations.append(ContinuityRecommendation(
            type="observation_reuse",
            priority="medium",
            message=f"{len(advice.reusable)} recent observation(s) available",
            action="Pre-populate assessment with recent observations",
        ))

    if not advice.reusable and not advice.reusable_assessments:
        recommendations.append(ContinuityRecommendation(
            type="new_baseline",
            priority="low",
            message="No recent data available",
            action="Create new baseline assessment",
        ))

    return recommendations


class ReuseContinuityAdvisor:
    """Produces reuse advice for a patient and template.

    Usage:
        data = DatabaseClinicalDataService(session)
        advisor = ReuseContinuityAdvisor(data)
        advice = advisor.advise_reuse(patient_id, template_id)
    """

    def __init__(
        self,
        data_service: ClinicalDataServiceInterface,
        scorer: TemplateMatchScorer | None = None,
    ) -> None:
        self._data = data_service
        self._resolver = MetricSetResolver(data_service)
        self._scorer = scorer or get_template_scorer()

    def advise_reuse(
        self,
        patient_id: str,
        target_template_id: str,
        validity_window: timedelta | None = None,
        as_of: datetime | None = None,
    ) -> ReuseAdvice:
        """Split a template's items into reusable and must-collect.

        Raises:
            NotFoundError: Unknown patient or template.
            ValidationError: Non-positive or out-of-range validity window.
        """
        window = validity_window if validity_window is not None else default_validity_window()
        as_of = normalize_as_of(as_of)
        metric_set = self._resolver.resolve_fresh_metrics(patient_id, as_of, window)
        template = self._data.get_template(target_template_id)
        return self._advise(patient_id, template, metric_set, window, as_of)

    def continuity_overview(
        self,
        patient_id: str,
        template_id: str | None = None,
        validity_window: timedelta | None = None,
        as_of: datetime | None = None,
    ) -> ContinuityOverview:
        """Rank every template against the patient's fresh metrics.

        When ``template_id`` is given, it is always part of the ranking
        (even with no items) and detailed advice for it is attached.
        """
        window = validity_window if validity_window is not None else default_validity_window()
        as_of = normalize_as_of(as_of)
        metric_set = self._resolver.resolve_fresh_metrics(patient_id, as_of, window)

        advice = None
        include_ids: list[str] = []
        if template_id is not None:
            template = self._data.get_template(template_id)
            advice = self._advise(patient_id, template, metric_set, window, as_of)
            include_ids.append(template.id)

        ranked = self._scorer.rank(self._data.list_templates(), metric_set, include_ids)

        return ContinuityOverview(
            patient_id=patient_id,
            validity_hours=window.total_seconds() / 3600,
            fresh_metric_ids=sorted(metric_set),
            ranked_templates=ranked,
            advice=advice,
        )

    def _advise(
        self,
        patient_id: str,
        template: AssessmentTemplate,
        metric_set: Mapping[str, Observation],
        window: timedelta,
        as_of: datetime,
    ) -> ReuseAdvice:
        match = self._scorer.score(template, metric_set)
        definitions = self._data.get_metric_definitions(match.matched_items)

        reusable = []
        for metric_id in match.matched_items:
            observation = metric_set[metric_id]
            definition = definitions.get(metric_id)
            reusable.append(ReusableMetric(
                metric_id=metric_id,
                metric_key=definition.key if definition else None,
                display_name=definition.display_name if definition else None,
                unit=definition.unit if definition else None,
                observation=observation,
                expires_at=observation.recorded_at + window,
            ))

        assessments = self._data.list_completed_assessments(
            patient_id,
            template.id,
            since=window_start(as_of, window),
            until=as_of,
            limit=settings.reusable_assessment_limit,
        )

        advice = ReuseAdvice(
            patient_id=patient_id,
            template_id=template.id,
            validity_hours=window.total_seconds() / 3600,
            reusable_assessments=assessments,
            reusable=reusable,
            must_collect=match.missing_required,
            optional_missing=match.missing_optional,
            expected_continuity_pct=match.match_score,
            match=match,
        )
        advice.recommendations = build_recommendations(advice)

        logger.info(
            f"Reuse advice for patient_id={patient_id} template={template.id}: "
            f"{len(assessments)} recent assessments, {len(reusable)} reusable, "
            f"{len(advice.must_collect)} must collect, {advice.expected_continuity_pct}% continuity"
        )
        return advice
