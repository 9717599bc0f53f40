"""Base schemas and enums for the care continuity engine."""

from enum import Enum


class ValueType(str, Enum):
    """Declared value type of a metric definition."""

    NUMERIC = "numeric"
    TEXT = "text"
    BOOLEAN = "boolean"
    CATEGORICAL = "categorical"
    ORDINAL = "ordinal"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    STRUCTURED = "structured"


class ObservationSource(str, Enum):
    """How an observation entered the clinical record."""

    MANUAL = "manual"
    DEVICE = "device"
    IMPORT = "import"
    ASSESSMENT = "assessment"


class ObservationContext(str, Enum):
    """Clinical context an observation was recorded in."""

    CLINICAL_MONITORING = "clinical_monitoring"
    PROGRAM_ENROLLMENT = "program_enrollment"
    ROUTINE_FOLLOWUP = "routine_followup"
    WELLNESS = "wellness"


class DiagnosisRole(str, Enum):
    """Role of a coded diagnosis in the patient's encounter context."""

    PRIMARY = "primary"
    SECONDARY = "secondary"


class SuggestionKind(str, Enum):
    """What a suggestion proposes."""

    BILLING_PACKAGE = "billing_package"
    CONTINUITY = "continuity"


class SuggestionStatus(str, Enum):
    """Review status of a suggestion.

    PENDING is the only non-terminal state.
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class SuggestionSource(str, Enum):
    """What triggered suggestion generation."""

    MANUAL = "manual"
    ENCOUNTER = "encounter"
    SCHEDULED = "scheduled"


class EnrollmentStatus(str, Enum):
    """Status of a program enrollment."""

    ACTIVE = "active"
    INACTIVE = "inactive"
