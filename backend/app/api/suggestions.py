"""Billing-package suggestion and review API endpoints.

Review failures surface their specific reason: the engine's exceptions are
rendered by the application-level handler as ``{"error", "detail"}`` with
404 / 409 / 422 / 503 status codes.
"""

import logging
import math
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.audit import log_data_access
from app.core.config import settings
from app.core.database import get_sync_db
from app.core.security import verify_api_key
from app.schemas.base import SuggestionKind, SuggestionStatus
from app.schemas.billing import ProgramMatch
from app.schemas.suggestion import (
    ApproveSuggestionRequest,
    GenerateSuggestionRequest,
    RejectSuggestionRequest,
    Suggestion,
    SuggestionHistoryPage,
    SuggestionResponse,
)
from app.services.clinical_data_db import DatabaseClinicalDataService
from app.services.package_suggester import BillingPackageSuggester
from app.services.suggestion_lifecycle import SuggestionLifecycleManager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Suggestions"], dependencies=[Depends(verify_api_key)])

# Type alias for database session dependency
DbSession = Annotated[Session, Depends(get_sync_db)]


def _suggester(db: Session) -> BillingPackageSuggester:
    return BillingPackageSuggester(DatabaseClinicalDataService(db), SuggestionLifecycleManager(db))


@router.get(
    "/patients/{patient_id}/program-matches",
    response_model=list[ProgramMatch],
    summary="Rank billing programs for a patient",
    description="Match the patient's diagnoses against the active program catalog without creating a suggestion.",
)
def get_program_matches(patient_id: str, db: DbSession) -> list[ProgramMatch]:
    logger.info(f"Matching billing programs for patient_id={patient_id}")
    return _suggester(db).match_patient_programs(patient_id)


@router.post(
    "/patients/{patient_id}/billing-suggestions",
    response_model=SuggestionResponse,
    summary="Generate a billing-package suggestion",
    description="Create a PENDING suggestion from the patient's matching programs, or return the pending one.",
)
def generate_billing_suggestion(
    patient_id: str,
    db: DbSession,
    request: GenerateSuggestionRequest | None = None,
) -> SuggestionResponse:
    """Generate a billing-package suggestion for review.

    Returns an empty ``suggestion`` when no program qualifies.
    """
    request = request or GenerateSuggestionRequest()
    suggestion = _suggester(db).suggest_billing_packages(
        patient_id,
        supported_programs=request.supported_programs,
        source_type=request.source_type,
        source_id=request.source_id,
    )
    if suggestion is None:
        return SuggestionResponse(suggestion=None, message="No billing programs match the patient's diagnoses")

    return SuggestionResponse(
        suggestion=suggestion,
        message=f"{len(suggestion.candidate_programs)} candidate program(s) pending review",
    )


@router.get(
    "/suggestion-history",
    response_model=SuggestionHistoryPage,
    summary="List suggestion history",
    description="Suggestions, pending and reviewed, newest first, one page at a time.",
)
def get_suggestion_history(
    db: DbSession,
    patient_id: Annotated[str | None, Query(description="Filter by patient")] = None,
    status: Annotated[SuggestionStatus | None, Query(description="Filter by status")] = None,
    kind: Annotated[SuggestionKind | None, Query(description="Filter by kind")] = None,
    limit: Annotated[int | None, Query(ge=1, le=settings.max_history_page_size, description="Page size")] = None,
    offset: Annotated[int, Query(ge=0, description="Offset for pagination")] = 0,
) -> SuggestionHistoryPage:
    """Get one page of suggestion history.

    Args:
        limit: Page size; defaults to ``history_page_size`` (20).
        offset: Number of suggestions to skip.
    """
    limit = limit or settings.history_page_size
    log_data_access("suggestion_history", patient_id=patient_id)
    manager = SuggestionLifecycleManager(db)
    total = manager.count_history(patient_id=patient_id, status=status, kind=kind)
    items = manager.list_history(patient_id=patient_id, status=status, kind=kind, limit=limit, offset=offset)
    return SuggestionHistoryPage(
        items=items,
        total=total,
        limit=limit,
        offset=offset,
        pages=math.ceil(total / limit),
    )


@router.get(
    "/suggestions/{suggestion_id}",
    response_model=Suggestion,
    summary="Get a suggestion",
)
def get_suggestion(suggestion_id: str, db: DbSession) -> Suggestion:
    suggestion = SuggestionLifecycleManager(db).get_suggestion(suggestion_id)
    log_data_access("suggestion", resource_id=suggestion_id, patient_id=suggestion.patient_id)
    return suggestion


@router.post(
    "/suggestions/{suggestion_id}/approve",
    response_model=SuggestionResponse,
    summary="Approve a suggestion",
    description="Approve a PENDING suggestion for one of its candidate programs and create the enrollment.",
)
def approve_suggestion(
    suggestion_id: str,
    request: ApproveSuggestionRequest,
    db: DbSession,
) -> SuggestionResponse:
    """Approve a suggestion.

    Raises:
        404 if the suggestion does not exist, 409 if it was already
        reviewed, 422 if the selection is missing or not a candidate.
    """
    suggestion = SuggestionLifecycleManager(db).approve(
        suggestion_id,
        reviewer_id=request.reviewer_id,
        selected_program_type=request.selected_program_type,
        start_date=request.start_date,
        clinician_id=request.clinician_id,
    )
    return SuggestionResponse(
        suggestion=suggestion,
        message=f"Approved {suggestion.selected_program_type}",
    )


@router.post(
    "/suggestions/{suggestion_id}/reject",
    response_model=SuggestionResponse,
    summary="Reject a suggestion",
    description="Reject a PENDING suggestion with a reason. No enrollment is created.",
)
def reject_suggestion(
    suggestion_id: str,
    request: RejectSuggestionRequest,
    db: DbSession,
) -> SuggestionResponse:
    suggestion = SuggestionLifecycleManager(db).reject(
        suggestion_id,
        reviewer_id=request.reviewer_id,
        rejection_reason=request.rejection_reason,
    )
    return SuggestionResponse(suggestion=suggestion, message="Suggestion rejected")
