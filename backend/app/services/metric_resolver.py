"""MetricSet Resolver.

Resolves the set of metrics a patient has a fresh (non-expired)
observation for, keeping only the most recent observation per metric.
"""

import logging
import math
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta

from app.core.config import settings
from app.core.exceptions import ValidationError
from app.schemas.observation import Observation
from app.services.clinical_data import ClinicalDataServiceInterface

logger = logging.getLogger(__name__)


def default_validity_window() -> timedelta:
    """Validity window from settings (168 hours unless configured)."""
    return timedelta(hours=settings.continuity_validity_hours)


def window_from_hours(hours: float) -> timedelta:
    """Convert a caller-supplied hour count into a validity window.

    Raises:
        ValidationError: NaN, infinite, non-positive or out-of-range hours.
    """
    if not math.isfinite(hours):
        raise ValidationError(f"validity window must be a finite number of hours, got {hours}")
    try:
        window = timedelta(hours=hours)
    except OverflowError as e:
        raise ValidationError(f"validity window of {hours} hours is out of range") from e
    validate_window(window)
    return window


def validate_window(window: timedelta) -> None:
    """Reject non-positive windows and windows above ``max_validity_hours``."""
    if window <= timedelta(0):
        raise ValidationError("validity window must be positive")
    if window > timedelta(hours=settings.max_validity_hours):
        raise ValidationError(f"validity window may not exceed {settings.max_validity_hours} hours")


def normalize_as_of(as_of: datetime | None) -> datetime:
    """Default to now; treat naive timestamps as UTC."""
    as_of = as_of or datetime.now(UTC)
    if as_of.tzinfo is None:
        as_of = as_of.replace(tzinfo=UTC)
    return as_of


def window_start(as_of: datetime, window: timedelta) -> datetime:
    """``as_of - window``, or ValidationError when that predates year 1."""
    try:
        return as_of - window
    except OverflowError as e:
        raise ValidationError(f"validity window of {window} reaches before the earliest representable date") from e


def select_most_recent(observations: Iterable[Observation]) -> dict[str, Observation]:
    """Keep the newest observation per metric.

    Ties on ``recorded_at`` go to the greater id.
    """
    latest: dict[str, Observation] = {}
    for obs in observations:
        current = latest.get(obs.metric_id)
        if current is None or (obs.recorded_at, obs.id) > (current.recorded_at, current.id):
            latest[obs.metric_id] = obs
    return latest


class MetricSetResolver:
    """Resolves fresh metric sets from the clinical record.

    Usage:
        resolver = MetricSetResolver(DatabaseClinicalDataService(session))
        metric_set = resolver.resolve_fresh_metrics(patient_id)
    """

    def __init__(self, data_service: ClinicalDataServiceInterface) -> None:
        self._data = data_service

    def resolve_fresh_metrics(
        self,
        patient_id: str,
        as_of: datetime | None = None,
        validity_window: timedelta | None = None,
    ) -> dict[str, Observation]:
        """Return ``{metric_id: observation}`` for observations in the window.

        Args:
            patient_id: Patient to resolve for.
            as_of: End of the window; defaults to now (UTC).
            validity_window: How far back an observation stays fresh.

        Returns:
            Most recent observation per metric; empty if none are in range.

        Raises:
            NotFoundError: Unknown patient.
            ValidationError: Non-positive or out-of-range validity window.
            TransientStoreError: Store unavailable.
        """
        window = validity_window if validity_window is not None else default_validity_window()
        validate_window(window)
        as_of = normalize_as_of(as_of)
        since = window_start(as_of, window)

        self._data.ensure_patient(patient_id)
        observations = self._data.list_observations(patient_id, since, as_of)
        metric_set = select_most_recent(observations)

        logger.info(
            f"Resolved {len(metric_set)} fresh metrics for patient_id={patient_id} "
            f"from {len(observations)} observations (window={window})"
        )
        return metric_set
