"""SQLAlchemy models for assessment templates and completed assessments."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base


class AssessmentTemplate(Base):
    """Assessment template reference data.

    The engine only reads the ordered ``items``.
    """

    __tablename__ = "assessment_templates"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    is_standardized: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    items = relationship(
        "AssessmentTemplateItem",
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="AssessmentTemplateItem.display_order",
    )

    def __repr__(self) -> str:
        return f"<AssessmentTemplate(id={self.id}, name={self.name})>"


class AssessmentTemplateItem(Base):
    """A metric slot on an assessment template."""

    __tablename__ = "assessment_template_items"

    template_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("assessment_templates.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    metric_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("metric_definitions.id"),
        nullable=False,
    )
    is_required: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )
    display_order: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    template = relationship("AssessmentTemplate", back_populates="items")

    def __repr__(self) -> str:
        return f"<AssessmentTemplateItem(template_id={self.template_id}, metric_id={self.metric_id}, required={self.is_required})>"


class Assessment(Base):
    """A completed assessment instance (read-only here).

    Recent completions of the same template are offered for reuse.
    """

    __tablename__ = "assessments"
    __table_args__ = (
        Index("ix_assessments_patient_template_completed", "patient_id", "template_id", "completed_at"),
    )

    patient_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    template_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("assessment_templates.id"),
        nullable=False,
    )
    clinician_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    completed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    template = relationship("AssessmentTemplate")

    def __repr__(self) -> str:
        return f"<Assessment(id={self.id}, patient_id={self.patient_id}, template_id={self.template_id}, completed_at={self.completed_at})>"
