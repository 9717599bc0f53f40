"""SQLAlchemy model for the billing program catalog."""

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base, JSONType


class BillingProgram(Base):
    """Curated billing program definition (RPM, RTM, CCM, ...).

    Rows are ordered by ``display_order``; that order is the tie-break
    between equally scored program matches.
    """

    __tablename__ = "billing_programs"

    program_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        index=True,
    )
    billing_program_code: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="",
    )
    cpt_codes: Mapped[list] = mapped_column(
        JSONType,
        nullable=False,
        default=list,
    )
    diagnosis_match_rules: Mapped[list] = mapped_column(
        JSONType,
        nullable=False,
        default=list,
    )
    category: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )
    display_order: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<BillingProgram(code={self.billing_program_code}, type={self.program_type}, active={self.is_active})>"
