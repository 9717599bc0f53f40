"""Suggestion review state machine.

States: PENDING -> APPROVED | PENDING -> REJECTED. Both targets are
terminal. Transition functions take an immutable ``SuggestionState`` and
return a new one, or raise a typed error and leave the input untouched.
"""

from dataclasses import dataclass, replace
from datetime import datetime

from app.core.exceptions import AlreadyReviewedError, InvalidSelectionError, InvalidStateTransitionError, ValidationError
from app.schemas.base import SuggestionKind, SuggestionStatus

LEGAL_TRANSITIONS: dict[SuggestionStatus, frozenset[SuggestionStatus]] = {
    SuggestionStatus.PENDING: frozenset({SuggestionStatus.APPROVED, SuggestionStatus.REJECTED}),
    SuggestionStatus.APPROVED: frozenset(),
    SuggestionStatus.REJECTED: frozenset(),
}


@dataclass(frozen=True)
class SuggestionState:
    """Review-relevant slice of a suggestion."""

    suggestion_id: str
    kind: SuggestionKind
    status: SuggestionStatus
    candidate_types: tuple[str, ...] = ()
    selected_program_type: str | None = None
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    rejection_reason: str | None = None
    created_enrollment_ids: tuple[str, ...] = ()

    @property
    def is_terminal(self) -> bool:
        return not LEGAL_TRANSITIONS[self.status]


def can_transition(current: SuggestionStatus, target: SuggestionStatus) -> bool:
    """Check whether ``current -> target`` is a legal transition."""
    return target in LEGAL_TRANSITIONS[current]


def ensure_pending(state: SuggestionState) -> None:
    """Raise AlreadyReviewedError unless the suggestion is still PENDING."""
    if state.status != SuggestionStatus.PENDING:
        raise AlreadyReviewedError(state.suggestion_id, state.status.value)


def validate_reviewer(reviewer_id: str | None) -> str:
    if reviewer_id is None or not reviewer_id.strip():
        raise ValidationError("reviewer_id is required")
    return reviewer_id.strip()


def validate_selection(state: SuggestionState, selected_program_type: str | None) -> str:
    """Check the selected program is one of the suggestion's candidates."""
    if selected_program_type is None or not selected_program_type.strip():
        raise InvalidSelectionError(
            f"Suggestion {state.suggestion_id}: a program must be selected from {list(state.candidate_types)}"
        )
    selected = selected_program_type.strip()
    if selected not in state.candidate_types:
        raise InvalidSelectionError(
            f"Suggestion {state.suggestion_id}: program '{selected}' is not a candidate "
            f"(candidates: {list(state.candidate_types)})"
        )
    return selected


def validate_rejection_reason(reason: str | None, min_length: int = 1) -> str:
    """Require at least ``min_length`` non-whitespace characters."""
    text = (reason or "").strip()
    required = max(1, min_length)
    if len("".join(text.split())) < required:
        raise ValidationError(
            f"rejection_reason is required (at least {required} non-whitespace character"
            f"{'s' if required > 1 else ''})"
        )
    return text


def approve(
    state: SuggestionState,
    reviewer_id: str,
    selected_program_type: str | None,
    enrollment_ids: list[str],
    reviewed_at: datetime,
) -> SuggestionState:
    """PENDING -> APPROVED with exactly one selected candidate.

    A BILLING_PACKAGE approval must carry at least one enrollment id. A
    CONTINUITY approval only records the selected template: it enrolls the
    patient in nothing, so its ``created_enrollment_ids`` stays empty.
    """
    ensure_pending(state)
    reviewer = validate_reviewer(reviewer_id)
    selected = validate_selection(state, selected_program_type)
    if state.kind == SuggestionKind.BILLING_PACKAGE and not enrollment_ids:
        raise InvalidStateTransitionError(
            f"Suggestion {state.suggestion_id}: approving a billing package must create an enrollment"
        )
    return replace(
        state,
        status=SuggestionStatus.APPROVED,
        selected_program_type=selected,
        reviewed_by=reviewer,
        reviewed_at=reviewed_at,
        created_enrollment_ids=tuple(enrollment_ids),
    )


def reject(
    state: SuggestionState,
    reviewer_id: str,
    rejection_reason: str | None,
    reviewed_at: datetime,
    min_length: int = 1,
) -> SuggestionState:
    """PENDING -> REJECTED with a non-empty reason; no enrollment."""
    ensure_pending(state)
    reviewer = validate_reviewer(reviewer_id)
    reason = validate_rejection_reason(rejection_reason, min_length)
    return replace(
        state,
        status=SuggestionStatus.REJECTED,
        reviewed_by=reviewer,
        reviewed_at=reviewed_at,
        rejection_reason=reason,
    )
