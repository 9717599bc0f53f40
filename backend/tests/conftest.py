"""Pytest configuration and fixtures for backend tests."""

from collections.abc import Generator, Iterable
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from app.core.database import Base, get_sync_db
from app.main import app
from app.models import (
    Assessment,
    AssessmentTemplate,
    AssessmentTemplateItem,
    BillingProgram,
    MetricDefinition,
    Observation,
    Patient,
    PatientDiagnosis,
)
from app.schemas.base import DiagnosisRole, ObservationSource, ValueType
from app.services.program_catalog import default_catalog
from app.services.program_matcher import reset_program_matcher
from app.services.template_scorer import reset_template_scorer


class ClinicalRecordFactory:
    """Builds the reference data and clinical record the engine reads.

    Usage:
        factory = ClinicalRecordFactory(session)
        patient = factory.patient([("M79.3", DiagnosisRole.PRIMARY)])
        bp = factory.metric("bp_systolic")
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def patient(
        self,
        diagnoses: Iterable[tuple[str, DiagnosisRole]] = (),
        organization_id: str | None = "org-1",
    ) -> Patient:
        patient = Patient(organization_id=organization_id, mrn="MRN-001")
        self.session.add(patient)
        self.session.flush()
        for position, (code, role) in enumerate(diagnoses):
            self.session.add(PatientDiagnosis(
                patient_id=patient.id,
                code=code,
                display=f"Diagnosis {code}",
                role=role,
                coding_system="ICD-10",
                position=position,
            ))
        self.session.flush()
        return patient

    def metric(self, key: str, value_type: ValueType = ValueType.NUMERIC, unit: str | None = None) -> MetricDefinition:
        metric = MetricDefinition(key=key, display_name=key.replace("_", " ").title(), value_type=value_type, unit=unit)
        self.session.add(metric)
        self.session.flush()
        return metric

    def template(
        self,
        name: str,
        items: Iterable[tuple[MetricDefinition, bool]] = (),
        is_standardized: bool = False,
    ) -> AssessmentTemplate:
        template = AssessmentTemplate(name=name, is_standardized=is_standardized)
        self.session.add(template)
        self.session.flush()
        for order, (metric, required) in enumerate(items):
            self.session.add(AssessmentTemplateItem(
                template_id=template.id,
                metric_id=metric.id,
                is_required=required,
                display_order=order,
            ))
        self.session.flush()
        return template

    def observation(
        self,
        patient: Patient,
        metric: MetricDefinition,
        recorded_at: datetime,
        value: dict | None = None,
        source: ObservationSource = ObservationSource.MANUAL,
        observation_id: str | None = None,
    ) -> Observation:
        observation = Observation(
            patient_id=patient.id,
            metric_id=metric.id,
            value=value or {"type": "numeric", "value": 120.0},
            recorded_at=recorded_at,
            source=source,
        )
        if observation_id is not None:
            observation.id = observation_id
        self.session.add(observation)
        self.session.flush()
        return observation

    def assessment(
        self,
        patient: Patient,
        template: AssessmentTemplate,
        completed_at: datetime,
        clinician_id: str | None = "clin-1",
    ) -> Assessment:
        assessment = Assessment(
            patient_id=patient.id,
            template_id=template.id,
            clinician_id=clinician_id,
            completed_at=completed_at,
        )
        self.session.add(assessment)
        self.session.flush()
        return assessment

    def catalog(self) -> list[BillingProgram]:
        programs = [BillingProgram(**p.model_dump()) for p in default_catalog()]
        self.session.add_all(programs)
        self.session.flush()
        return programs


@pytest.fixture(autouse=True)
def reset_singletons() -> Generator[None, None, None]:
    """Singletons read settings at construction; rebuild them per test."""
    reset_program_matcher()
    reset_template_scorer()
    yield
    reset_program_matcher()
    reset_template_scorer()


@pytest.fixture
def db_engine() -> Generator[Engine, None, None]:
    """In-memory SQLite engine shared across threads (for TestClient)."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def db_session(db_engine: Engine) -> Generator[Session, None, None]:
    """Create a database session with every engine table."""
    session = Session(db_engine, expire_on_commit=False)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def factory(db_session: Session) -> ClinicalRecordFactory:
    return ClinicalRecordFactory(db_session)


@pytest.fixture
def client(db_engine: Engine) -> Generator[TestClient, None, None]:
    """Create a test client whose request sessions use the SQLite engine."""

    def override_get_sync_db() -> Generator[Session, None, None]:
        session = Session(db_engine, expire_on_commit=False)
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[get_sync_db] = override_get_sync_db
    try:
        yield TestClient(app)
    finally:
        # Clean up overrides
        app.dependency_overrides.clear()
