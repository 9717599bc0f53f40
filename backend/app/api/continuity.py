"""Continuity (observation reuse) API endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.database import get_sync_db
from app.core.security import verify_api_key
from app.schemas.template import ContinuityOverview
from app.services.clinical_data_db import DatabaseClinicalDataService
from app.services.continuity_advisor import ReuseContinuityAdvisor
from app.services.metric_resolver import window_from_hours

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Continuity"], dependencies=[Depends(verify_api_key)])

# Type alias for database session dependency
DbSession = Annotated[Session, Depends(get_sync_db)]


@router.get(
    "/continuity-suggestions/{patient_id}",
    response_model=ContinuityOverview,
    summary="Get continuity suggestions",
    description="Rank assessment templates by how much of each can be pre-populated from fresh observations.",
)
def get_continuity_suggestions(
    patient_id: str,
    db: DbSession,
    template_id: Annotated[str | None, Query(description="Template to build detailed reuse advice for")] = None,
    validity_hours: Annotated[float | None, Query(description="Freshness window in hours (default 168)")] = None,
) -> ContinuityOverview:
    """Get continuity suggestions for a patient.

    Args:
        patient_id: The patient identifier.
        template_id: Optional template the operator is about to start.
        validity_hours: Overrides the configured validity window.

    Returns:
        ContinuityOverview with ranked templates and, when a template
        is given, what to reuse and what to collect.
    """
    window = window_from_hours(validity_hours) if validity_hours is not None else None
    logger.info(f"Continuity suggestions for patient_id={patient_id} template_id={template_id}")
    advisor = ReuseContinuityAdvisor(DatabaseClinicalDataService(db))
    return advisor.continuity_overview(patient_id, template_id=template_id, validity_window=window)
