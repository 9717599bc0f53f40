"""Template Match Scorer.

Scores how well a patient's fresh metric set covers an assessment
template's items, and ranks several templates against the same set.

Scoring is pure: identical inputs always give identical output.
"""

import logging
import threading
from collections.abc import Iterable, Mapping

from app.schemas.observation import Observation
from app.schemas.template import AssessmentTemplate, TemplateMatch
from app.services.scoring import percent

logger = logging.getLogger(__name__)

# Required items count double in the secondary ranking score
REQUIRED_ITEM_WEIGHT = 2
OPTIONAL_ITEM_WEIGHT = 1


def score_template(
    template: AssessmentTemplate,
    metric_set: Mapping[str, Observation],
) -> TemplateMatch:
    """Score one template against a metric set.

    An item is matched iff ``metric_set`` holds its metric id. A template
    with no items scores 0 and is flagged ``scored=False``.
    """
    matched: list[str] = []
    unmatched: list[str] = []
    missing_required: list[str] = []
    missing_optional: list[str] = []
    weighted_hit = 0
    weighted_total = 0

    for item in sorted(template.items, key=lambda i: i.display_order):
        weight = REQUIRED_ITEM_WEIGHT if item.is_required else OPTIONAL_ITEM_WEIGHT
        weighted_total += weight
        if item.metric_id in metric_set:
            matched.append(item.metric_id)
            weighted_hit += weight
        else:
            unmatched.append(item.metric_id)
            if item.is_required:
                missing_required.append(item.metric_id)
            else:
                missing_optional.append(item.metric_id)

    total = len(matched) + len(unmatched)

    return TemplateMatch(
        target_id=template.id,
        template_name=template.name,
        is_standardized=template.is_standardized,
        matched_items=matched,
        unmatched_items=unmatched,
        match_score=percent(len(matched), total),
        scored=total > 0,
        weighted_score=percent(weighted_hit, weighted_total),
        missing_required=missing_required,
        missing_optional=missing_optional,
    )


def rank_templates(
    templates: Iterable[AssessmentTemplate],
    metric_set: Mapping[str, Observation],
    include_ids: Iterable[str] = (),
) -> list[TemplateMatch]:
    """Score and rank templates.

    Order: match score desc, required-weighted score desc, name asc.
    Unscored (empty) templates are dropped unless listed in ``include_ids``.
    """
    keep_unscored = set(include_ids)
    results = [score_template(t, metric_set) for t in templates]
    ranked = [r for r in results if r.scored or r.target_id in keep_unscored]
    ranked.sort(key=lambda r: (-r.match_score, -r.weighted_score, r.template_name))
    return ranked


# ============================================================================
# Singleton Instance
# ============================================================================

_scorer_instance: "TemplateMatchScorer | None" = None
_scorer_lock = threading.Lock()


def get_template_scorer() -> "TemplateMatchScorer":
    """Get the singleton template scorer instance."""
    global _scorer_instance
    if _scorer_instance is None:
        with _scorer_lock:
            if _scorer_instance is None:
                _scorer_instance = TemplateMatchScorer()
    return _scorer_instance


def reset_template_scorer() -> None:
    """Reset the singleton instance (for testing)."""
    global _scorer_instance
    with _scorer_lock:
        _scorer_instance = None


class TemplateMatchScorer:
    """Service wrapper around the pure scoring functions."""

    def score(self, template: AssessmentTemplate, metric_set: Mapping[str, Observation]) -> TemplateMatch:
        result = score_template(template, metric_set)
        logger.debug(
            f"Scored template {template.id}: {result.match_score}% "
            f"({len(result.matched_items)}/{len(template.items)} items)"
        )
        return result

    def rank(
        self,
        templates: Iterable[AssessmentTemplate],
        metric_set: Mapping[str, Observation],
        include_ids: Iterable[str] = (),
    ) -> list[TemplateMatch]:
        return rank_templates(templates, metric_set, include_ids)

    def get_stats(self) -> dict:
        """Get service statistics."""
        return {
            "required_item_weight": REQUIRED_ITEM_WEIGHT,
            "optional_item_weight": OPTIONAL_ITEM_WEIGHT,
        }
