"""Tests for the Suggestion Lifecycle Manager.

Covers creation, approval with enrollment side effects, rejection,
history, audit logging, and concurrent approval of the same suggestion.
"""

import logging
from datetime import date
from uuid import uuid4

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import Base
from app.core.exceptions import (
    AlreadyReviewedError,
    DuplicateSuggestionError,
    InvalidSelectionError,
    NotFoundError,
    ValidationError,
)
from app.models import Enrollment as EnrollmentModel
from app.models import Suggestion as SuggestionModel
from app.schemas.base import DiagnosisRole, EnrollmentStatus, SuggestionKind, SuggestionStatus
from app.schemas.billing import Diagnosis, ProgramMatch
from app.schemas.template import TemplateMatch
from app.services.program_catalog import default_catalog
from app.services.program_matcher import match_programs
from app.services.suggestion_lifecycle import SuggestionLifecycleManager


def hypertension_matches() -> list[ProgramMatch]:
    """I10 primary matches RPM and CCM but not RTM."""
    return match_programs([Diagnosis(code="I10", role=DiagnosisRole.PRIMARY)], default_catalog())


def create_pending(manager: SuggestionLifecycleManager, patient_id: str):
    matches = hypertension_matches()
    return manager.create_suggestion(
        patient_id=patient_id,
        kind=SuggestionKind.BILLING_PACKAGE,
        match_results=matches,
        matched_diagnoses=matches[0].evidence,
    )


def enrollment_count(session: Session) -> int:
    return session.execute(select(func.count()).select_from(EnrollmentModel)).scalar_one()


@pytest.fixture
def manager(db_session: Session) -> SuggestionLifecycleManager:
    return SuggestionLifecycleManager(db_session)


@pytest.fixture
def patient_id(factory) -> str:
    return factory.patient([("I10", DiagnosisRole.PRIMARY)]).id


class TestCreateSuggestion:
    """Tests for suggestion creation."""

    def test_created_as_pending_with_full_candidate_list(self, manager, patient_id) -> None:
        suggestion = create_pending(manager, patient_id)

        assert suggestion.status == SuggestionStatus.PENDING
        assert suggestion.candidate_program_types == ["RPM", "CCM"]
        assert suggestion.match_score == 100
        assert suggestion.reviewed_at is None
        assert suggestion.reviewed_by is None
        assert suggestion.rejection_reason is None
        assert suggestion.created_enrollment_ids == []

    def test_candidates_round_trip_as_program_matches(self, manager, patient_id) -> None:
        suggestion = create_pending(manager, patient_id)
        loaded = manager.get_suggestion(suggestion.id)

        assert all(isinstance(c, ProgramMatch) for c in loaded.candidate_programs)
        assert loaded.candidate_programs[0].billing_program_code == "CMS_RPM_2025"
        assert loaded.matched_diagnoses[0].code == "I10"

    def test_continuity_candidates_round_trip_as_template_matches(self, manager, patient_id) -> None:
        match = TemplateMatch(target_id=str(uuid4()), template_name="Vitals", match_score=50)
        suggestion = manager.create_suggestion(patient_id, SuggestionKind.CONTINUITY, [match], metadata={"window_hours": 168})

        loaded = manager.get_suggestion(suggestion.id)
        assert isinstance(loaded.candidate_programs[0], TemplateMatch)
        assert loaded.metadata == {"window_hours": 168}

    def test_no_candidates_rejected(self, manager, patient_id) -> None:
        with pytest.raises(ValidationError):
            manager.create_suggestion(patient_id, SuggestionKind.BILLING_PACKAGE, [])

    def test_blank_patient_rejected(self, manager) -> None:
        with pytest.raises(ValidationError):
            manager.create_suggestion(" ", SuggestionKind.BILLING_PACKAGE, hypertension_matches())


class TestPendingKey:
    """One open suggestion per pending key."""

    def create_keyed(self, manager, patient_id):
        matches = hypertension_matches()
        return manager.create_suggestion(
            patient_id=patient_id,
            kind=SuggestionKind.BILLING_PACKAGE,
            match_results=matches,
            pending_key=f"{patient_id}:billing_package",
        )

    def test_second_pending_with_same_key_rejected(self, manager, patient_id, db_session) -> None:
        first = self.create_keyed(manager, patient_id)

        with pytest.raises(DuplicateSuggestionError):
            self.create_keyed(manager, patient_id)

        assert [s.id for s in manager.list_history(patient_id=patient_id)] == [first.id]

    def test_session_usable_after_duplicate(self, manager, patient_id, factory) -> None:
        """The failed insert is rolled back to its savepoint only."""
        self.create_keyed(manager, patient_id)
        with pytest.raises(DuplicateSuggestionError):
            self.create_keyed(manager, patient_id)

        other = factory.patient().id
        assert self.create_keyed(manager, other).status == SuggestionStatus.PENDING

    @pytest.mark.parametrize("review", ["approve", "reject"])
    def test_key_released_on_review(self, manager, patient_id, db_session, review: str) -> None:
        first = self.create_keyed(manager, patient_id)
        if review == "approve":
            manager.approve(first.id, "dr-lee", "RPM")
        else:
            manager.reject(first.id, "dr-lee", "Not eligible")

        second = self.create_keyed(manager, patient_id)

        assert second.id != first.id
        assert db_session.get(SuggestionModel, first.id).pending_key is None

    def test_unkeyed_suggestions_may_coexist(self, manager, patient_id) -> None:
        create_pending(manager, patient_id)
        create_pending(manager, patient_id)
        assert len(manager.list_pending(patient_id)) == 2


class TestApprove:
    """Tests for approval and its enrollment side effect."""

    def test_approve_creates_enrollment(self, manager, patient_id, db_session) -> None:
        suggestion = create_pending(manager, patient_id)

        approved = manager.approve(suggestion.id, "dr-lee", "CCM", start_date=date(2026, 3, 15))

        assert approved.status == SuggestionStatus.APPROVED
        assert approved.selected_program_type == "CCM"
        assert approved.reviewed_by == "dr-lee"
        assert approved.reviewed_at is not None
        assert len(approved.created_enrollment_ids) == 1

        enrollment = db_session.get(EnrollmentModel, approved.created_enrollment_ids[0])
        assert enrollment.patient_id == patient_id
        assert enrollment.billing_program_code == "CMS_CCM_2025"
        assert enrollment.status == EnrollmentStatus.ACTIVE
        assert enrollment.start_date == date(2026, 3, 15)
        assert enrollment.clinician_id == "dr-lee"
        assert enrollment.suggestion_id == suggestion.id

    def test_selection_not_a_candidate_fails(self, manager, patient_id, db_session) -> None:
        """Approving RTM when candidates are RPM and CCM leaves the suggestion PENDING."""
        suggestion = create_pending(manager, patient_id)

        with pytest.raises(InvalidSelectionError):
            manager.approve(suggestion.id, "dr-lee", "RTM")

        assert manager.get_suggestion(suggestion.id).status == SuggestionStatus.PENDING
        assert enrollment_count(db_session) == 0

    def test_omitted_selection_fails(self, manager, patient_id) -> None:
        suggestion = create_pending(manager, patient_id)
        with pytest.raises(InvalidSelectionError):
            manager.approve(suggestion.id, "dr-lee", None)

    def test_unknown_suggestion_not_found(self, manager) -> None:
        with pytest.raises(NotFoundError):
            manager.approve(str(uuid4()), "dr-lee", "RPM")

    def test_reuses_active_enrollment_on_same_start_date(self, manager, patient_id, db_session) -> None:
        existing = EnrollmentModel(
            patient_id=patient_id,
            program_type="RPM",
            billing_program_code="CMS_RPM_2025",
            status=EnrollmentStatus.ACTIVE,
            start_date=date(2026, 3, 15),
        )
        db_session.add(existing)
        db_session.flush()
        suggestion = create_pending(manager, patient_id)

        approved = manager.approve(suggestion.id, "dr-lee", "RPM", start_date=date(2026, 3, 15))

        assert approved.created_enrollment_ids == [existing.id]
        assert enrollment_count(db_session) == 1

    def test_clinician_defaults_to_reviewer_unless_given(self, manager, patient_id, db_session) -> None:
        suggestion = create_pending(manager, patient_id)
        approved = manager.approve(suggestion.id, "dr-lee", "RPM", clinician_id="dr-patel")

        enrollment = db_session.get(EnrollmentModel, approved.created_enrollment_ids[0])
        assert enrollment.clinician_id == "dr-patel"

    def test_continuity_approval_creates_no_enrollment(self, manager, patient_id, db_session) -> None:
        template_id = str(uuid4())
        suggestion = manager.create_suggestion(
            patient_id,
            SuggestionKind.CONTINUITY,
            [TemplateMatch(target_id=template_id, template_name="Vitals", match_score=80)],
        )

        approved = manager.approve(suggestion.id, "dr-lee", template_id)

        assert approved.status == SuggestionStatus.APPROVED
        assert approved.created_enrollment_ids == []
        assert enrollment_count(db_session) == 0


class TestReject:
    """Tests for rejection."""

    def test_reject_records_reason(self, manager, patient_id, db_session) -> None:
        suggestion = create_pending(manager, patient_id)

        rejected = manager.reject(suggestion.id, "dr-lee", "Patient declined remote monitoring")

        assert rejected.status == SuggestionStatus.REJECTED
        assert rejected.rejection_reason == "Patient declined remote monitoring"
        assert rejected.reviewed_by == "dr-lee"
        assert rejected.created_enrollment_ids == []
        assert enrollment_count(db_session) == 0

    def test_empty_reason_fails_and_stays_pending(self, manager, patient_id) -> None:
        suggestion = create_pending(manager, patient_id)

        with pytest.raises(ValidationError):
            manager.reject(suggestion.id, "dr-lee", "")

        assert manager.get_suggestion(suggestion.id).status == SuggestionStatus.PENDING

    def test_configured_minimum_reason_length(self, manager, patient_id, monkeypatch) -> None:
        monkeypatch.setattr(settings, "rejection_reason_min_length", 10)
        suggestion = create_pending(manager, patient_id)

        with pytest.raises(ValidationError):
            manager.reject(suggestion.id, "dr-lee", "too short")


class TestTerminalStates:
    """Reviewed suggestions never change again."""

    def test_approved_cannot_be_rejected_or_reapproved(self, manager, patient_id, db_session) -> None:
        suggestion = create_pending(manager, patient_id)
        approved = manager.approve(suggestion.id, "dr-lee", "RPM")

        with pytest.raises(AlreadyReviewedError):
            manager.reject(suggestion.id, "dr-patel", "changed my mind")
        with pytest.raises(AlreadyReviewedError):
            manager.approve(suggestion.id, "dr-patel", "CCM")

        assert manager.get_suggestion(suggestion.id) == approved
        assert enrollment_count(db_session) == 1

    def test_rejected_cannot_be_approved(self, manager, patient_id, db_session) -> None:
        suggestion = create_pending(manager, patient_id)
        rejected = manager.reject(suggestion.id, "dr-lee", "Not eligible")

        with pytest.raises(AlreadyReviewedError) as exc_info:
            manager.approve(suggestion.id, "dr-patel", "RPM")

        assert exc_info.value.status == "rejected"
        assert manager.get_suggestion(suggestion.id) == rejected
        assert enrollment_count(db_session) == 0


class TestConcurrentApproval:
    """Two reviewers approving the same suggestion at once."""

    def test_exactly_one_concurrent_approval_wins(self, tmp_path) -> None:
        engine = create_engine(f"sqlite:///{tmp_path / 'race.db'}", future=True)
        Base.metadata.create_all(engine)
        try:
            with Session(engine, expire_on_commit=False) as setup:
                suggestion = create_pending(SuggestionLifecycleManager(setup), str(uuid4()))
                setup.commit()

            session_a = Session(engine, expire_on_commit=False)
            session_b = Session(engine, expire_on_commit=False)
            try:
                # Reviewer A loads the suggestion while it is still PENDING
                assert session_a.get(SuggestionModel, suggestion.id).status == SuggestionStatus.PENDING

                # Reviewer B approves and commits first
                SuggestionLifecycleManager(session_b).approve(suggestion.id, "dr-b", "RPM")
                session_b.commit()

                # Reviewer A's approval loses the conditional update
                with pytest.raises(AlreadyReviewedError):
                    SuggestionLifecycleManager(session_a).approve(suggestion.id, "dr-a", "CCM")
                session_a.rollback()
            finally:
                session_a.close()
                session_b.close()

            with Session(engine) as check:
                row = check.get(SuggestionModel, suggestion.id)
                assert row.status == SuggestionStatus.APPROVED
                assert row.selected_program_type == "RPM"
                assert row.reviewed_by == "dr-b"
                assert enrollment_count(check) == 1
        finally:
            engine.dispose()


class TestHistory:
    """Tests for history reads."""

    def test_history_includes_all_statuses_newest_first(self, manager, patient_id) -> None:
        first = create_pending(manager, patient_id)
        second = create_pending(manager, patient_id)
        third = create_pending(manager, patient_id)
        manager.approve(first.id, "dr-lee", "RPM")
        manager.reject(second.id, "dr-lee", "Duplicate")

        history = manager.list_history(patient_id=patient_id)

        assert [s.id for s in history] == [third.id, second.id, first.id]
        assert {s.status for s in history} == set(SuggestionStatus)

    def test_history_filters(self, manager, patient_id, factory) -> None:
        other_patient = factory.patient().id
        mine = create_pending(manager, patient_id)
        create_pending(manager, other_patient)
        manager.reject(mine.id, "dr-lee", "Not now")

        assert [s.id for s in manager.list_history(patient_id=patient_id, status=SuggestionStatus.REJECTED)] == [mine.id]
        assert manager.list_history(patient_id=patient_id, status=SuggestionStatus.PENDING) == []
        assert len(manager.list_history(kind=SuggestionKind.BILLING_PACKAGE)) == 2
        assert manager.list_history(kind=SuggestionKind.CONTINUITY) == []

    def test_history_read_is_repeatable(self, manager, patient_id) -> None:
        create_pending(manager, patient_id)
        assert manager.list_history() == manager.list_history()

    def test_list_pending(self, manager, patient_id) -> None:
        pending = create_pending(manager, patient_id)
        reviewed = create_pending(manager, patient_id)
        manager.reject(reviewed.id, "dr-lee", "No")

        assert [s.id for s in manager.list_pending(patient_id)] == [pending.id]

    def test_history_pages_newest_first(self, manager, patient_id) -> None:
        created = [create_pending(manager, patient_id) for _ in range(5)]
        newest_first = [s.id for s in reversed(created)]

        first_page = manager.list_history(patient_id=patient_id, limit=2)
        second_page = manager.list_history(patient_id=patient_id, limit=2, offset=2)
        last_page = manager.list_history(patient_id=patient_id, limit=2, offset=4)

        assert [s.id for s in first_page] == newest_first[:2]
        assert [s.id for s in second_page] == newest_first[2:4]
        assert [s.id for s in last_page] == newest_first[4:]
        assert manager.list_history(patient_id=patient_id, limit=2, offset=10) == []

    def test_count_history_matches_filters(self, manager, patient_id, factory) -> None:
        other_patient = factory.patient().id
        mine = create_pending(manager, patient_id)
        create_pending(manager, patient_id)
        create_pending(manager, other_patient)
        manager.reject(mine.id, "dr-lee", "Not now")

        assert manager.count_history() == 3
        assert manager.count_history(patient_id=patient_id) == 2
        assert manager.count_history(patient_id=patient_id, status=SuggestionStatus.REJECTED) == 1
        assert manager.count_history(kind=SuggestionKind.CONTINUITY) == 0

    def test_get_unknown_suggestion(self, manager) -> None:
        with pytest.raises(NotFoundError):
            manager.get_suggestion("missing")


class TestReviewAudit:
    """Review attempts are written to the audit log."""

    def test_successful_approval_audited(self, manager, patient_id, caplog) -> None:
        suggestion = create_pending(manager, patient_id)
        with caplog.at_level(logging.INFO, logger="audit"):
            manager.approve(suggestion.id, "dr-lee", "RPM")

        messages = [r.getMessage() for r in caplog.records if r.name == "audit"]
        assert any(f"approve suggestion/{suggestion.id}" in m and "success=True" in m for m in messages)
        assert any("enroll enrollment/" in m for m in messages)

    def test_failed_rejection_audited(self, manager, patient_id, caplog) -> None:
        suggestion = create_pending(manager, patient_id)
        with caplog.at_level(logging.INFO, logger="audit"):
            with pytest.raises(ValidationError):
                manager.reject(suggestion.id, "dr-lee", " ")

        failures = [r for r in caplog.records if r.name == "audit" and r.levelno == logging.WARNING]
        assert len(failures) == 1
        assert failures[0].audit_event["details"]["reason"].startswith("rejection_reason is required")
