"""Tests for the Template Match Scorer."""

from datetime import UTC, datetime

import pytest

from app.schemas.observation import Observation
from app.schemas.template import AssessmentTemplate, TemplateItem
from app.services.template_scorer import (
    TemplateMatchScorer,
    get_template_scorer,
    rank_templates,
    reset_template_scorer,
    score_template,
)

RECORDED = datetime(2026, 3, 14, 9, 30, tzinfo=UTC)


def metric_set(*metric_ids: str) -> dict[str, Observation]:
    return {
        m: Observation(
            id=f"obs-{m}",
            patient_id="P001",
            metric_id=m,
            value={"type": "numeric", "value": 1.0},
            recorded_at=RECORDED,
        )
        for m in metric_ids
    }


def template(template_id: str, name: str, required: list[str], optional: list[str] = ()) -> AssessmentTemplate:
    items = [TemplateItem(metric_id=m, is_required=True, display_order=i) for i, m in enumerate(required)]
    items += [
        TemplateItem(metric_id=m, is_required=False, display_order=len(required) + i)
        for i, m in enumerate(optional)
    ]
    return AssessmentTemplate(id=template_id, name=name, items=items)


class TestScoreTemplate:
    """Tests for single-template scoring."""

    def test_partial_coverage_scores_67(self) -> None:
        """Two of three required metrics on file scores round(200/3)."""
        vitals = template("t1", "Vitals", ["bp_systolic", "bp_diastolic", "weight"])
        result = score_template(vitals, metric_set("bp_systolic", "weight"))

        assert result.match_score == 67
        assert result.matched_items == ["bp_systolic", "weight"]
        assert result.unmatched_items == ["bp_diastolic"]
        assert result.missing_required == ["bp_diastolic"]
        assert result.missing_optional == []

    def test_full_coverage_scores_100(self) -> None:
        vitals = template("t1", "Vitals", ["bp_systolic", "weight"])
        result = score_template(vitals, metric_set("bp_systolic", "weight", "heart_rate"))

        assert result.match_score == 100
        assert result.unmatched_items == []

    def test_no_coverage_scores_zero(self) -> None:
        vitals = template("t1", "Vitals", ["bp_systolic", "weight"])
        result = score_template(vitals, metric_set())

        assert result.match_score == 0
        assert result.scored is True
        assert result.matched_items == []

    def test_empty_template_is_unscored(self) -> None:
        """A template with no items scores 0 and is flagged unscored."""
        result = score_template(template("t0", "Empty", []), metric_set("weight"))

        assert result.match_score == 0
        assert result.scored is False

    def test_half_rounds_up(self) -> None:
        """1 of 8 items is 12.5%, reported as 13."""
        eight = template("t8", "Eight", [f"m{i}" for i in range(8)])
        assert score_template(eight, metric_set("m0")).match_score == 13

    def test_optional_items_tracked_separately(self) -> None:
        pain = template("t2", "Pain", ["pain_level"], optional=["sleep_quality", "mood"])
        result = score_template(pain, metric_set("pain_level", "mood"))

        assert result.match_score == 67
        assert result.missing_required == []
        assert result.missing_optional == ["sleep_quality"]

    def test_items_reported_in_display_order(self) -> None:
        items = [
            TemplateItem(metric_id="c", display_order=2),
            TemplateItem(metric_id="a", display_order=0),
            TemplateItem(metric_id="b", display_order=1),
        ]
        result = score_template(AssessmentTemplate(id="t", name="T", items=items), metric_set("a", "b", "c"))
        assert result.matched_items == ["a", "b", "c"]

    def test_weighted_score_counts_required_double(self) -> None:
        """Required items weigh 2, optional 1: matched 2 of 3 total weight."""
        t = template("t3", "Mixed", ["req"], optional=["opt"])
        assert score_template(t, metric_set("req")).weighted_score == 67
        assert score_template(t, metric_set("opt")).weighted_score == 33

    def test_scoring_is_deterministic(self) -> None:
        t = template("t1", "Vitals", ["a", "b", "c"])
        ms = metric_set("a", "c")
        assert score_template(t, ms) == score_template(t, ms)

    @pytest.mark.parametrize("present", [(), ("a",), ("a", "b"), ("a", "b", "c")])
    def test_score_bounds(self, present: tuple[str, ...]) -> None:
        """Score stays within [0, 100] and is 100 only with full coverage."""
        result = score_template(template("t", "T", ["a", "b", "c"]), metric_set(*present))
        assert 0 <= result.match_score <= 100
        assert (result.match_score == 100) == (len(present) == 3)


class TestRankTemplates:
    """Tests for ranking several templates."""

    def test_rank_by_score_descending(self) -> None:
        ms = metric_set("a", "b")
        full = template("t1", "Full", ["a", "b"])
        half = template("t2", "Half", ["a", "x"])
        none = template("t3", "None", ["y"])

        ranked = rank_templates([none, half, full], ms)
        assert [r.target_id for r in ranked] == ["t1", "t2", "t3"]

    def test_equal_scores_prefer_required_coverage(self) -> None:
        """Same match score, higher required-weighted score ranks first."""
        ms = metric_set("req")
        required_hit = template("t1", "Zeta", ["req"], optional=["opt"])
        optional_hit = template("t2", "Alpha", ["other"], optional=["req"])

        ranked = rank_templates([optional_hit, required_hit], ms)
        assert [r.target_id for r in ranked] == ["t1", "t2"]

    def test_full_ties_break_on_name(self) -> None:
        ms = metric_set("a")
        ranked = rank_templates([template("t2", "Beta", ["a"]), template("t1", "Alpha", ["a"])], ms)
        assert [r.template_name for r in ranked] == ["Alpha", "Beta"]

    def test_unscored_templates_excluded(self) -> None:
        ranked = rank_templates([template("t0", "Empty", []), template("t1", "Vitals", ["a"])], metric_set())
        assert [r.target_id for r in ranked] == ["t1"]

    def test_unscored_template_kept_when_requested(self) -> None:
        ranked = rank_templates([template("t0", "Empty", [])], metric_set(), include_ids=["t0"])
        assert [r.target_id for r in ranked] == ["t0"]
        assert ranked[0].scored is False


class TestTemplateScorerSingleton:
    """Tests for the scorer service wrapper."""

    def test_singleton_returns_same_instance(self) -> None:
        assert get_template_scorer() is get_template_scorer()

    def test_reset_creates_new_instance(self) -> None:
        first = get_template_scorer()
        reset_template_scorer()
        assert get_template_scorer() is not first

    def test_service_delegates_to_pure_functions(self) -> None:
        scorer = TemplateMatchScorer()
        t = template("t1", "Vitals", ["a", "b"])
        assert scorer.score(t, metric_set("a")).match_score == 50
        assert scorer.rank([t], metric_set("a"))[0].target_id == "t1"
        assert scorer.get_stats() == {"required_item_weight": 2, "optional_item_weight": 1}
