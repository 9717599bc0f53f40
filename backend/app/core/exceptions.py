"""Exception hierarchy for the matching engine.

Every error carries an HTTP status and a short machine-readable code so the
API layer can surface the specific reason a review action failed.
"""


class EngineError(Exception):
    """Base error for the continuity and billing-suggestion engine."""

    status_code: int = 500
    code: str = "engine_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NotFoundError(EngineError):
    """A patient, template or suggestion does not exist."""

    status_code = 404
    code = "not_found"

    def __init__(self, resource_type: str, resource_id: str) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f"{resource_type} {resource_id} not found")


class ValidationError(EngineError):
    """Input failed a business rule (e.g. missing rejection reason)."""

    status_code = 422
    code = "validation_error"


class InvalidSelectionError(EngineError):
    """Approval did not name a program from the candidate list."""

    status_code = 422
    code = "invalid_selection"


class InvalidStateTransitionError(EngineError):
    """A suggestion transition is not legal from its current status."""

    status_code = 409
    code = "invalid_state_transition"


class AlreadyReviewedError(InvalidStateTransitionError):
    """The suggestion has already been approved or rejected."""

    code = "already_reviewed"

    def __init__(self, suggestion_id: str, status: str) -> None:
        self.suggestion_id = suggestion_id
        self.status = status
        super().__init__(f"Suggestion {suggestion_id} already reviewed (status: {status})")


class TransientStoreError(EngineError):
    """The backing store is unavailable; the caller may retry."""

    status_code = 503
    code = "store_unavailable"


class DuplicateSuggestionError(EngineError):
    """Another PENDING suggestion already holds the same pending key."""

    status_code = 409
    code = "duplicate_suggestion"

    def __init__(self, patient_id: str, kind: str) -> None:
        self.patient_id = patient_id
        self.kind = kind
        super().__init__(f"Patient {patient_id} already has a pending {kind} suggestion")
