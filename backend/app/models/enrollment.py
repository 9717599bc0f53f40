"""SQLAlchemy model for program enrollments created on approval."""

from datetime import date

from sqlalchemy import Date, Enum, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.schemas.base import EnrollmentStatus


class Enrollment(Base):
    """A patient's enrollment in a billing program."""

    __tablename__ = "enrollments"
    __table_args__ = (
        Index("ix_enrollments_patient_program_start", "patient_id", "billing_program_code", "start_date"),
    )

    patient_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )
    program_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )
    billing_program_code: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    status: Mapped[EnrollmentStatus] = mapped_column(
        Enum(EnrollmentStatus, name="enrollment_status", create_constraint=True, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=EnrollmentStatus.ACTIVE,
    )
    start_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )
    clinician_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    suggestion_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("suggestions.id"),
        nullable=True,
        index=True,
    )
    notes: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Enrollment(id={self.id}, patient_id={self.patient_id}, program={self.billing_program_code}, status={self.status})>"
