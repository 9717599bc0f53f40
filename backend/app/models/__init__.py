"""SQLAlchemy ORM models for the care continuity engine.

All models inherit from Base which provides:
- id: UUID primary key
- created_at: Timestamp

Models:
- Patient, PatientDiagnosis (consumed reference data)
- MetricDefinition, Observation (consumed clinical record)
- AssessmentTemplate, AssessmentTemplateItem (consumed reference data)
- Assessment (consumed completed assessments)
- BillingProgram (curated catalog)
- Suggestion, Enrollment (owned by the engine)
"""

from app.core.database import Base
from app.models.assessment_template import Assessment, AssessmentTemplate, AssessmentTemplateItem
from app.models.billing_program import BillingProgram
from app.models.enrollment import Enrollment
from app.models.observation import MetricDefinition, Observation
from app.models.patient import Patient, PatientDiagnosis
from app.models.suggestion import Suggestion

__all__ = [
    "Base",
    "Patient",
    "PatientDiagnosis",
    "MetricDefinition",
    "Observation",
    "AssessmentTemplate",
    "AssessmentTemplateItem",
    "Assessment",
    "BillingProgram",
    "Suggestion",
    "Enrollment",
]
