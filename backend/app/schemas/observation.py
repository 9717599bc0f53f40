"""Pydantic schemas for metric definitions and observations.

Observation values are a tagged union discriminated by ``type`` so a
reused value always arrives with its shape declared, e.g.::

    {"type": "numeric", "value": 128.0}
    {"type": "ordinal", "value": 3, "label": "moderate"}
"""

from datetime import date, datetime, time
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from app.schemas.base import ObservationContext, ObservationSource, ValueType


class NumericValue(BaseModel):
    type: Literal["numeric"] = "numeric"
    value: float


class TextValue(BaseModel):
    type: Literal["text"] = "text"
    value: str


class BooleanValue(BaseModel):
    type: Literal["boolean"] = "boolean"
    value: bool


class CategoricalValue(BaseModel):
    type: Literal["categorical"] = "categorical"
    value: str = Field(..., description="Selected option code")


class OrdinalValue(BaseModel):
    type: Literal["ordinal"] = "ordinal"
    value: int = Field(..., description="Position on the ordinal scale")
    label: str | None = None


class DateValue(BaseModel):
    type: Literal["date"] = "date"
    value: date


class TimeValue(BaseModel):
    type: Literal["time"] = "time"
    value: time


class DateTimeValue(BaseModel):
    type: Literal["datetime"] = "datetime"
    value: datetime


class StructuredValue(BaseModel):
    type: Literal["structured"] = "structured"
    value: dict[str, Any]


ObservationValue = Annotated[
    Union[
        NumericValue,
        TextValue,
        BooleanValue,
        CategoricalValue,
        OrdinalValue,
        DateValue,
        TimeValue,
        DateTimeValue,
        StructuredValue,
    ],
    Field(discriminator="type"),
]

observation_value_adapter: TypeAdapter[ObservationValue] = TypeAdapter(ObservationValue)


class NormalRange(BaseModel):
    """Reference range for a numeric metric."""

    low: float | None = None
    high: float | None = None


class MetricDefinition(BaseModel):
    """Reference definition of a measurable metric."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    key: str
    display_name: str
    value_type: ValueType
    unit: str | None = None
    normal_range: NormalRange | None = None


class Observation(BaseModel):
    """A single recorded observation.

    Immutable once recorded; a newer observation for the same metric
    supersedes it for reuse purposes.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    patient_id: str
    metric_id: str
    value: ObservationValue
    recorded_at: datetime
    source: ObservationSource = ObservationSource.MANUAL
    context: ObservationContext | None = None
