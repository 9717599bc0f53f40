"""Suggestion Lifecycle Manager.

Persists suggestions and applies review transitions. The transition rules
live in ``suggestion_state``; this module adds storage, the enrollment
side effect of approval, and audit logging.

Concurrent reviews of the same suggestion are serialized by a conditional
update keyed on ``status = 'pending'``: exactly one reviewer claims the
row, every other attempt observes ``AlreadyReviewedError``. The enrollment
is written in the same transaction as the claim, so the caller's commit
(or rollback) covers both.
"""

import logging
from collections.abc import Sequence
from datetime import UTC, date, datetime

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.audit import AuditAction, log_audit, log_review
from app.core.config import settings
from app.core.exceptions import (
    AlreadyReviewedError,
    DuplicateSuggestionError,
    EngineError,
    NotFoundError,
    ValidationError,
)
from app.models.enrollment import Enrollment as EnrollmentModel
from app.models.suggestion import Suggestion as SuggestionModel
from app.schemas.base import EnrollmentStatus, SuggestionKind, SuggestionSource, SuggestionStatus
from app.schemas.billing import DiagnosisEvidence, ProgramMatch
from app.schemas.suggestion import Suggestion
from app.schemas.template import TemplateMatch
from app.services import suggestion_state
from app.services.clinical_data_db import is_valid_id, store_errors
from app.services.suggestion_state import SuggestionState

logger = logging.getLogger(__name__)


def to_state(row: SuggestionModel) -> SuggestionState:
    """Build the immutable review state for a suggestion row."""
    return SuggestionState(
        suggestion_id=row.id,
        kind=row.kind,
        status=row.status,
        candidate_types=tuple(c["target_id"] for c in row.candidate_programs or []),
        selected_program_type=row.selected_program_type,
        reviewed_by=row.reviewed_by,
        reviewed_at=row.reviewed_at,
        rejection_reason=row.rejection_reason,
        created_enrollment_ids=tuple(row.created_enrollment_ids or []),
    )


class SuggestionLifecycleManager:
    """Creates suggestions and governs their review.

    The manager flushes but never commits; the request-scoped session
    owns the transaction.

    Usage:
        manager = SuggestionLifecycleManager(session)
        suggestion = manager.create_suggestion(patient_id, SuggestionKind.BILLING_PACKAGE, matches, evidence)
        manager.approve(suggestion.id, reviewer_id="dr-lee", selected_program_type="RPM")
    """

    def __init__(self, session: Session) -> None:
        """Initialize the lifecycle manager.

        Args:
            session: SQLAlchemy database session.
        """
        self._session = session

    # ------------------------------------------------------------------
    # Creation and reads
    # ------------------------------------------------------------------

    def create_suggestion(
        self,
        patient_id: str,
        kind: SuggestionKind,
        match_results: Sequence[ProgramMatch | TemplateMatch],
        matched_diagnoses: Sequence[DiagnosisEvidence] = (),
        metadata: dict | None = None,
        source_type: SuggestionSource = SuggestionSource.MANUAL,
        source_id: str | None = None,
        pending_key: str | None = None,
    ) -> Suggestion:
        """Persist a new PENDING suggestion with its full ranked candidate list.

        When ``pending_key`` is given, at most one PENDING suggestion may hold
        it at a time; the key is released when the suggestion is reviewed.

        Raises:
            ValidationError: Blank patient id or no candidates to choose from.
            DuplicateSuggestionError: Another PENDING suggestion holds ``pending_key``.
        """
        if not patient_id or not patient_id.strip():
            raise ValidationError("patient_id is required")
        if not match_results:
            raise ValidationError("a suggestion needs at least one candidate")

        row = SuggestionModel(
            patient_id=patient_id,
            kind=kind,
            status=SuggestionStatus.PENDING,
            candidate_programs=[m.model_dump(mode="json") for m in match_results],
            matched_diagnoses=[d.model_dump(mode="json") for d in matched_diagnoses],
            extra_metadata=dict(metadata or {}),
            match_score=match_results[0].match_score,
            created_enrollment_ids=[],
            source_type=source_type,
            source_id=source_id,
            pending_key=pending_key,
            created_at=datetime.now(UTC),
        )
        try:
            with store_errors("suggestion insert"), self._session.begin_nested():
                self._session.add(row)
                self._session.flush()
        except IntegrityError as e:
            if pending_key is None:
                raise
            logger.info(f"Pending key {pending_key} already held; not creating a duplicate")
            raise DuplicateSuggestionError(patient_id, kind.value) from e

        logger.info(
            f"Created {kind.value} suggestion {row.id} for patient_id={patient_id} "
            f"with candidates {[m.target_id for m in match_results]}"
        )
        log_audit(
            action=AuditAction.CREATE,
            resource_type="suggestion",
            resource_id=row.id,
            patient_id=patient_id,
            details={"kind": kind.value, "source_type": source_type.value},
        )
        return Suggestion.model_validate(row)

    def get_suggestion(self, suggestion_id: str) -> Suggestion:
        """Get a suggestion by id or raise NotFoundError."""
        return Suggestion.model_validate(self._load(suggestion_id))

    def list_history(
        self,
        patient_id: str | None = None,
        status: SuggestionStatus | None = None,
        kind: SuggestionKind | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Suggestion]:
        """List suggestions newest first, pending and terminal alike.

        ``limit``/``offset`` page through the same ordering; no limit
        returns everything from ``offset`` on.
        """
        stmt = (
            select(SuggestionModel)
            .where(*self._history_filters(patient_id, status, kind))
            .order_by(SuggestionModel.created_at.desc(), SuggestionModel.id)
        )
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)

        with store_errors("suggestion history query"):
            rows = self._session.execute(stmt).scalars().all()
        return [Suggestion.model_validate(row) for row in rows]

    def count_history(
        self,
        patient_id: str | None = None,
        status: SuggestionStatus | None = None,
        kind: SuggestionKind | None = None,
    ) -> int:
        """Count the suggestions ``list_history`` would page through."""
        stmt = (
            select(func.count())
            .select_from(SuggestionModel)
            .where(*self._history_filters(patient_id, status, kind))
        )
        with store_errors("suggestion history count"):
            return self._session.execute(stmt).scalar_one()

    @staticmethod
    def _history_filters(
        patient_id: str | None,
        status: SuggestionStatus | None,
        kind: SuggestionKind | None,
    ) -> list:
        filters = []
        if patient_id is not None:
            filters.append(SuggestionModel.patient_id == patient_id)
        if status is not None:
            filters.append(SuggestionModel.status == status)
        if kind is not None:
            filters.append(SuggestionModel.kind == kind)
        return filters

    def list_pending(self, patient_id: str, kind: SuggestionKind | None = None) -> list[Suggestion]:
        return self.list_history(patient_id=patient_id, status=SuggestionStatus.PENDING, kind=kind)

    # ------------------------------------------------------------------
    # Review transitions
    # ------------------------------------------------------------------

    def approve(
        self,
        suggestion_id: str,
        reviewer_id: str,
        selected_program_type: str | None,
        start_date: date | None = None,
        clinician_id: str | None = None,
    ) -> Suggestion:
        """Approve a PENDING suggestion for exactly one of its candidates.

        For billing packages this creates an ACTIVE enrollment in the
        selected program (an existing ACTIVE enrollment for the same
        patient, program and start date is reused).

        Raises:
            NotFoundError: Unknown suggestion.
            AlreadyReviewedError: Suggestion is not PENDING.
            InvalidSelectionError: Selection omitted or not a candidate.
        """
        row = self._load(suggestion_id)
        state = to_state(row)
        try:
            suggestion_state.ensure_pending(state)
            reviewer = suggestion_state.validate_reviewer(reviewer_id)
            selected = suggestion_state.validate_selection(state, selected_program_type)

            reviewed_at = datetime.now(UTC)
            self._claim(row, SuggestionStatus.APPROVED, reviewer, reviewed_at, selected_program_type=selected)

            enrollment_ids: list[str] = []
            if state.kind == SuggestionKind.BILLING_PACKAGE:
                enrollment = self._ensure_enrollment(
                    row,
                    selected,
                    start_date or reviewed_at.date(),
                    clinician_id or reviewer,
                )
                enrollment_ids.append(enrollment.id)

            new_state = suggestion_state.approve(state, reviewer, selected, enrollment_ids, reviewed_at)
        except EngineError as e:
            log_review(
                AuditAction.APPROVE,
                suggestion_id,
                reviewer_id,
                patient_id=row.patient_id,
                success=False,
                reason=e.message,
            )
            raise

        self._apply(row, new_state)
        log_review(
            AuditAction.APPROVE,
            suggestion_id,
            reviewer,
            patient_id=row.patient_id,
            details={"selected_program_type": selected, "enrollment_ids": enrollment_ids},
        )
        logger.info(f"Suggestion {suggestion_id} approved by {reviewer} for {selected}")
        return Suggestion.model_validate(row)

    def reject(
        self,
        suggestion_id: str,
        reviewer_id: str,
        rejection_reason: str | None,
    ) -> Suggestion:
        """Reject a PENDING suggestion; no enrollment is created.

        Raises:
            NotFoundError: Unknown suggestion.
            AlreadyReviewedError: Suggestion is not PENDING.
            ValidationError: Missing or too-short rejection reason.
        """
        row = self._load(suggestion_id)
        state = to_state(row)
        try:
            suggestion_state.ensure_pending(state)
            reviewer = suggestion_state.validate_reviewer(reviewer_id)
            reason = suggestion_state.validate_rejection_reason(
                rejection_reason,
                settings.rejection_reason_min_length,
            )

            reviewed_at = datetime.now(UTC)
            self._claim(row, SuggestionStatus.REJECTED, reviewer, reviewed_at, rejection_reason=reason)
            new_state = suggestion_state.reject(
                state,
                reviewer,
                reason,
                reviewed_at,
                settings.rejection_reason_min_length,
            )
        except EngineError as e:
            log_review(
                AuditAction.REJECT,
                suggestion_id,
                reviewer_id,
                patient_id=row.patient_id,
                success=False,
                reason=e.message,
            )
            raise

        self._apply(row, new_state)
        log_review(AuditAction.REJECT, suggestion_id, reviewer, patient_id=row.patient_id, reason=reason)
        logger.info(f"Suggestion {suggestion_id} rejected by {reviewer}")
        return Suggestion.model_validate(row)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load(self, suggestion_id: str) -> SuggestionModel:
        if not is_valid_id(suggestion_id):
            raise NotFoundError("Suggestion", suggestion_id)
        with store_errors("suggestion lookup"):
            row = self._session.get(SuggestionModel, suggestion_id)
        if row is None:
            raise NotFoundError("Suggestion", suggestion_id)
        return row

    def _claim(
        self,
        row: SuggestionModel,
        target: SuggestionStatus,
        reviewer: str,
        reviewed_at: datetime,
        **values,
    ) -> None:
        """Move the row out of PENDING, or fail if another reviewer got there first."""
        stmt = (
            update(SuggestionModel)
            .where(
                SuggestionModel.id == row.id,
                SuggestionModel.status == SuggestionStatus.PENDING,
            )
            .values(status=target, reviewed_by=reviewer, reviewed_at=reviewed_at, pending_key=None, **values)
            .execution_options(synchronize_session=False)
        )
        with store_errors("suggestion claim"):
            result = self._session.execute(stmt)

        if result.rowcount == 0:
            with store_errors("suggestion refresh"):
                self._session.refresh(row)
            logger.warning(f"Suggestion {row.id} was reviewed concurrently (status: {row.status.value})")
            raise AlreadyReviewedError(row.id, row.status.value)

    def _ensure_enrollment(
        self,
        row: SuggestionModel,
        program_type: str,
        start_date: date,
        clinician_id: str,
    ) -> EnrollmentModel:
        candidate = next(c for c in row.candidate_programs if c["target_id"] == program_type)
        billing_program_code = candidate.get("billing_program_code") or program_type

        stmt = select(EnrollmentModel).where(
            EnrollmentModel.patient_id == row.patient_id,
            EnrollmentModel.billing_program_code == billing_program_code,
            EnrollmentModel.start_date == start_date,
            EnrollmentModel.status == EnrollmentStatus.ACTIVE,
        )
        with store_errors("enrollment lookup"):
            existing = self._session.execute(stmt).scalars().first()
        if existing is not None:
            logger.info(
                f"Reusing enrollment {existing.id} for patient_id={row.patient_id} "
                f"in {billing_program_code} starting {start_date}"
            )
            return existing

        enrollment = EnrollmentModel(
            patient_id=row.patient_id,
            program_type=program_type,
            billing_program_code=billing_program_code,
            status=EnrollmentStatus.ACTIVE,
            start_date=start_date,
            clinician_id=clinician_id,
            suggestion_id=row.id,
            notes=f"Created from suggestion {row.id}",
        )
        with store_errors("enrollment insert"):
            self._session.add(enrollment)
            self._session.flush()

        log_audit(
            action=AuditAction.ENROLL,
            resource_type="enrollment",
            resource_id=enrollment.id,
            patient_id=row.patient_id,
            user_id=clinician_id,
            details={"billing_program_code": billing_program_code, "suggestion_id": row.id},
        )
        return enrollment

    def _apply(self, row: SuggestionModel, state: SuggestionState) -> None:
        """Write a transitioned state back onto the (claimed) row."""
        row.status = state.status
        row.selected_program_type = state.selected_program_type
        row.reviewed_by = state.reviewed_by
        row.reviewed_at = state.reviewed_at
        row.rejection_reason = state.rejection_reason
        row.created_enrollment_ids = list(state.created_enrollment_ids)
        row.pending_key = None
        with store_errors("suggestion update"):
            self._session.flush()
