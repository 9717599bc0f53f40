"""Clinical data service interface.

The engine never owns the clinical record. Everything it consumes
(patients, observations, templates, completed assessments, diagnoses,
the program catalog) is
read through this interface so scoring code stays independent of the
storage layer.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from app.schemas.billing import BillingProgramDefinition, Diagnosis
from app.schemas.observation import MetricDefinition, Observation
from app.schemas.template import AssessmentTemplate, CompletedAssessment


class ClinicalDataServiceInterface(ABC):
    """Read-only access to the reference data and clinical record.

    Implementations raise ``NotFoundError`` for missing patients or
    templates and ``TransientStoreError`` when the store is unavailable.
    "No data" is never an error: empty lists are returned instead.

    Example usage:
        data = DatabaseClinicalDataService(session)
        observations = data.list_observations("P001", since, until)
    """

    @abstractmethod
    def ensure_patient(self, patient_id: str) -> None:
        """Raise NotFoundError unless the patient exists."""
        pass  # pragma: no cover

    @abstractmethod
    def list_observations(
        self,
        patient_id: str,
        since: datetime,
        until: datetime,
    ) -> list[Observation]:
        """List a patient's observations recorded within [since, until].

        Results are ordered by ``recorded_at``, then id (oldest first).
        """
        pass  # pragma: no cover

    @abstractmethod
    def get_metric_definitions(self, metric_ids: list[str]) -> dict[str, MetricDefinition]:
        """Look up metric definitions by id; unknown ids are omitted."""
        pass  # pragma: no cover

    @abstractmethod
    def get_template(self, template_id: str) -> AssessmentTemplate:
        """Get a template with its ordered items, or raise NotFoundError."""
        pass  # pragma: no cover

    @abstractmethod
    def list_templates(self) -> list[AssessmentTemplate]:
        """List every assessment template."""
        pass  # pragma: no cover

    @abstractmethod
    def list_completed_assessments(
        self,
        patient_id: str,
        template_id: str,
        since: datetime,
        until: datetime,
        limit: int,
    ) -> list[CompletedAssessment]:
        """List completions of a template within [since, until], newest first, at most ``limit``."""
        pass  # pragma: no cover

    @abstractmethod
    def list_diagnoses(self, patient_id: str) -> list[Diagnosis]:
        """List the patient's coded diagnoses in problem-list order."""
        pass  # pragma: no cover

    @abstractmethod
    def list_program_catalog(self, active_only: bool = True) -> list[BillingProgramDefinition]:
        """List billing program definitions in declaration order."""
        pass  # pragma: no cover
