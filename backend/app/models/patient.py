"""SQLAlchemy models for Patient and PatientDiagnosis.

The patient record itself is owned by the portal's CRUD layer; the
engine only checks existence and reads coded diagnoses.
"""

from sqlalchemy import Enum, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.schemas.base import DiagnosisRole


class Patient(Base):
    """Minimal patient record used for existence checks."""

    __tablename__ = "patients"

    organization_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        index=True,
    )
    mrn: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    diagnoses = relationship(
        "PatientDiagnosis",
        back_populates="patient",
        cascade="all, delete-orphan",
        order_by="PatientDiagnosis.position",
    )

    def __repr__(self) -> str:
        return f"<Patient(id={self.id}, mrn={self.mrn})>"


class PatientDiagnosis(Base):
    """A coded diagnosis on the patient's problem list."""

    __tablename__ = "patient_diagnoses"

    patient_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    code: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        index=True,
    )
    display: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        default="",
    )
    role: Mapped[DiagnosisRole] = mapped_column(
        Enum(DiagnosisRole, name="diagnosis_role", create_constraint=True, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=DiagnosisRole.SECONDARY,
    )
    coding_system: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="ICD-10",
    )
    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    patient = relationship("Patient", back_populates="diagnoses")

    def __repr__(self) -> str:
        return f"<PatientDiagnosis(patient_id={self.patient_id}, code={self.code}, role={self.role})>"
