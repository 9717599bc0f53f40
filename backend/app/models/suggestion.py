"""SQLAlchemy model for Suggestion."""

from datetime import datetime

from sqlalchemy import DateTime, Enum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base, JSONType
from app.schemas.base import SuggestionKind, SuggestionSource, SuggestionStatus


class Suggestion(Base):
    """A system-generated suggestion awaiting or past human review.

    Rows are never deleted; the table is the audit trail of every
    proposal and its outcome. Status moves only PENDING -> APPROVED or
    PENDING -> REJECTED, guarded by a conditional update on ``status``.
    """

    __tablename__ = "suggestions"

    patient_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )
    kind: Mapped[SuggestionKind] = mapped_column(
        Enum(SuggestionKind, name="suggestion_kind", create_constraint=True, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
    )
    status: Mapped[SuggestionStatus] = mapped_column(
        Enum(SuggestionStatus, name="suggestion_status", create_constraint=True, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=SuggestionStatus.PENDING,
        index=True,
    )
    candidate_programs: Mapped[list] = mapped_column(
        JSONType,
        nullable=False,
        default=list,
    )
    matched_diagnoses: Mapped[list] = mapped_column(
        JSONType,
        nullable=False,
        default=list,
    )
    extra_metadata: Mapped[dict] = mapped_column(
        "metadata",  # Column name in database
        JSONType,
        nullable=False,
        default=dict,
    )
    match_score: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )
    selected_program_type: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )
    rejection_reason: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    reviewed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    reviewed_by: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    created_enrollment_ids: Mapped[list] = mapped_column(
        JSONType,
        nullable=False,
        default=list,
    )
    source_type: Mapped[SuggestionSource] = mapped_column(
        Enum(SuggestionSource, name="suggestion_source", create_constraint=True, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=SuggestionSource.MANUAL,
    )
    source_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    # Set while PENDING to enforce one open suggestion per key; cleared on review
    pending_key: Mapped[str | None] = mapped_column(
        String(300),
        nullable=True,
        unique=True,
    )

    def __repr__(self) -> str:
        return f"<Suggestion(id={self.id}, patient_id={self.patient_id}, kind={self.kind}, status={self.status})>"
