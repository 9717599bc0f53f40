"""SQLAlchemy models for MetricDefinition and Observation."""

from datetime import datetime

from sqlalchemy import DateTime, Enum, Float, ForeignKey, Index, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base, JSONType
from app.schemas.base import ObservationContext, ObservationSource, ValueType


class MetricDefinition(Base):
    """Reference definition of a measurable metric (read-only here)."""

    __tablename__ = "metric_definitions"

    key: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
    )
    display_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    value_type: Mapped[ValueType] = mapped_column(
        Enum(ValueType, name="value_type", create_constraint=True, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
    )
    unit: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )
    normal_low: Mapped[float | None] = mapped_column(
        Float,
        nullable=True,
    )
    normal_high: Mapped[float | None] = mapped_column(
        Float,
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<MetricDefinition(id={self.id}, key={self.key}, value_type={self.value_type})>"


class Observation(Base):
    """A recorded observation for a patient metric.

    Rows are append-only. The stored ``value`` is the JSON form of the
    tagged observation value union.
    """

    __tablename__ = "observations"
    __table_args__ = (
        Index("ix_observations_patient_recorded", "patient_id", "recorded_at"),
    )

    patient_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )
    metric_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("metric_definitions.id"),
        nullable=False,
        index=True,
    )
    value: Mapped[dict] = mapped_column(
        JSONType,
        nullable=False,
    )
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    source: Mapped[ObservationSource] = mapped_column(
        Enum(ObservationSource, name="observation_source", create_constraint=True, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=ObservationSource.MANUAL,
    )
    context: Mapped[ObservationContext | None] = mapped_column(
        Enum(ObservationContext, name="observation_context", create_constraint=True, values_callable=lambda x: [e.value for e in x]),
        nullable=True,
    )

    metric = relationship("MetricDefinition")

    def __repr__(self) -> str:
        return f"<Observation(id={self.id}, patient_id={self.patient_id}, metric_id={self.metric_id}, recorded_at={self.recorded_at})>"
