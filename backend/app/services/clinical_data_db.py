"""Database-backed clinical data service.

Reads the portal's relational schema through SQLAlchemy and converts
rows into validated value objects at the boundary, so malformed rows
fail here instead of deep in scoring code.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.orm import Session, selectinload

from app.core.exceptions import NotFoundError, TransientStoreError, ValidationError
from app.models.assessment_template import Assessment
from app.models.assessment_template import AssessmentTemplate as AssessmentTemplateModel
from app.models.billing_program import BillingProgram
from app.models.observation import MetricDefinition as MetricDefinitionModel
from app.models.observation import Observation as ObservationModel
from app.models.patient import Patient, PatientDiagnosis
from app.schemas.billing import BillingProgramDefinition, Diagnosis
from app.schemas.observation import MetricDefinition, NormalRange, Observation
from app.schemas.template import AssessmentTemplate, CompletedAssessment, TemplateItem
from app.services.clinical_data import ClinicalDataServiceInterface

logger = logging.getLogger(__name__)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps (SQLite drops the offset)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def is_valid_id(value: str) -> bool:
    """Check that an identifier is a well-formed UUID string."""
    try:
        UUID(str(value))
    except ValueError:
        return False
    return True


@contextmanager
def store_errors(operation: str) -> Iterator[None]:
    """Translate connection-level database failures into TransientStoreError."""
    try:
        yield
    except (OperationalError, InterfaceError) as e:
        logger.error(f"Store unavailable during {operation}: {e}")
        raise TransientStoreError(f"Store unavailable during {operation}") from e


class DatabaseClinicalDataService(ClinicalDataServiceInterface):
    """SQLAlchemy implementation of the clinical data interface.

    Usage:
        service = DatabaseClinicalDataService(session)
        template = service.get_template(template_id)
    """

    def __init__(self, session: Session) -> None:
        """Initialize the data service.

        Args:
            session: SQLAlchemy database session.
        """
        self._session = session

    def ensure_patient(self, patient_id: str) -> None:
        if not is_valid_id(patient_id):
            raise NotFoundError("Patient", patient_id)
        with store_errors("patient lookup"):
            patient = self._session.get(Patient, patient_id)
        if patient is None:
            raise NotFoundError("Patient", patient_id)

    def list_observations(
        self,
        patient_id: str,
        since: datetime,
        until: datetime,
    ) -> list[Observation]:
        stmt = (
            select(ObservationModel)
            .where(
                ObservationModel.patient_id == patient_id,
                ObservationModel.recorded_at >= since,
                ObservationModel.recorded_at <= until,
            )
            .order_by(ObservationModel.recorded_at, ObservationModel.id)
        )
        with store_errors("observation query"):
            rows = self._session.execute(stmt).scalars().all()

        return [self._to_observation(row) for row in rows]

    def get_metric_definitions(self, metric_ids: list[str]) -> dict[str, MetricDefinition]:
        ids = [m for m in metric_ids if is_valid_id(m)]
        if not ids:
            return {}
        stmt = select(MetricDefinitionModel).where(MetricDefinitionModel.id.in_(ids))
        with store_errors("metric definition query"):
            rows = self._session.execute(stmt).scalars().all()

        definitions = {}
        for row in rows:
            normal_range = None
            if row.normal_low is not None or row.normal_high is not None:
                normal_range = NormalRange(low=row.normal_low, high=row.normal_high)
            definitions[row.id] = MetricDefinition(
                id=row.id,
                key=row.key,
                display_name=row.display_name,
                value_type=row.value_type,
                unit=row.unit,
                normal_range=normal_range,
            )
        return definitions

    def get_template(self, template_id: str) -> AssessmentTemplate:
        if not is_valid_id(template_id):
            raise NotFoundError("AssessmentTemplate", template_id)
        with store_errors("template lookup"):
            row = self._session.get(
                AssessmentTemplateModel,
                template_id,
                options=[selectinload(AssessmentTemplateModel.items)],
            )
        if row is None:
            raise NotFoundError("AssessmentTemplate", template_id)
        return self._to_template(row)

    def list_templates(self) -> list[AssessmentTemplate]:
        stmt = (
            select(AssessmentTemplateModel)
            .options(selectinload(AssessmentTemplateModel.items))
            .order_by(AssessmentTemplateModel.name)
        )
        with store_errors("template query"):
            rows = self._session.execute(stmt).scalars().all()
        return [self._to_template(row) for row in rows]

    def list_completed_assessments(
        self,
        patient_id: str,
        template_id: str,
        since: datetime,
        until: datetime,
        limit: int,
    ) -> list[CompletedAssessment]:
        stmt = (
            select(Assessment)
            .where(
                Assessment.patient_id == patient_id,
                Assessment.template_id == template_id,
                Assessment.completed_at >= since,
                Assessment.completed_at <= until,
            )
            .order_by(Assessment.completed_at.desc(), Assessment.id.desc())
            .limit(limit)
        )
        with store_errors("assessment query"):
            rows = self._session.execute(stmt).scalars().all()

        return [
            CompletedAssessment(
                id=row.id,
                patient_id=row.patient_id,
                template_id=row.template_id,
                clinician_id=row.clinician_id,
                completed_at=as_utc(row.completed_at),
            )
            for row in rows
        ]

    def list_diagnoses(self, patient_id: str) -> list[Diagnosis]:
        stmt = (
            select(PatientDiagnosis)
            .where(PatientDiagnosis.patient_id == patient_id)
            .order_by(PatientDiagnosis.position, PatientDiagnosis.created_at)
        )
        with store_errors("diagnosis query"):
            rows = self._session.execute(stmt).scalars().all()

        diagnoses = []
        for row in rows:
            try:
                diagnoses.append(Diagnosis(
                    code=row.code,
                    display=row.display,
                    role=row.role,
                    coding_system=row.coding_system,
                ))
            except PydanticValidationError as e:
                raise ValidationError(f"Diagnosis {row.id} is malformed: {e}") from e
        return diagnoses

    def list_program_catalog(self, active_only: bool = True) -> list[BillingProgramDefinition]:
        stmt = select(BillingProgram).order_by(BillingProgram.display_order, BillingProgram.created_at)
        if active_only:
            stmt = stmt.where(BillingProgram.is_active.is_(True))
        with store_errors("program catalog query"):
            rows = self._session.execute(stmt).scalars().all()

        return [
            BillingProgramDefinition(
                program_type=row.program_type,
                billing_program_code=row.billing_program_code,
                name=row.name,
                cpt_codes=list(row.cpt_codes or []),
                diagnosis_match_rules=list(row.diagnosis_match_rules or []),
                category=row.category,
                display_order=row.display_order,
                is_active=row.is_active,
            )
            for row in rows
        ]

    # ------------------------------------------------------------------
    # Row conversion
    # ------------------------------------------------------------------

    def _to_observation(self, row: ObservationModel) -> Observation:
        try:
            return Observation(
                id=row.id,
                patient_id=row.patient_id,
                metric_id=row.metric_id,
                value=row.value,
                recorded_at=as_utc(row.recorded_at),
                source=row.source,
                context=row.context,
            )
        except PydanticValidationError as e:
            raise ValidationError(f"Observation {row.id} has a malformed value: {e}") from e

    def _to_template(self, row: AssessmentTemplateModel) -> AssessmentTemplate:
        return AssessmentTemplate(
            id=row.id,
            name=row.name,
            is_standardized=row.is_standardized,
            items=[
                TemplateItem(
                    metric_id=item.metric_id,
                    is_required=item.is_required,
                    display_order=item.display_order,
                )
                for item in row.items
            ],
        )
