"""Create care continuity and billing suggestion tables.

Revision ID: 001
Revises: None
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

ENUMS = {
    "value_type": (
        "numeric", "text", "boolean", "categorical", "ordinal",
        "date", "time", "datetime", "structured",
    ),
    "observation_source": ("manual", "device", "import", "assessment"),
    "observation_context": ("clinical_monitoring", "program_enrollment", "routine_followup", "wellness"),
    "diagnosis_role": ("primary", "secondary"),
    "suggestion_kind": ("billing_package", "continuity"),
    "suggestion_status": ("pending", "approved", "rejected"),
    "suggestion_source": ("manual", "encounter", "scheduled"),
    "enrollment_status": ("active", "inactive"),
}


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column("id", postgresql.UUID(as_uuid=False), primary_key=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
    ]


def upgrade() -> None:
    enums = {}
    for name, values in ENUMS.items():
        enum = postgresql.ENUM(*values, name=name, create_type=False)
        enum.create(op.get_bind(), checkfirst=True)
        enums[name] = enum

    # Consumed reference data and clinical record
    op.create_table(
        "patients",
        *_base_columns(),
        sa.Column("organization_id", sa.String(255), nullable=True),
        sa.Column("mrn", sa.String(100), nullable=True),
    )
    op.create_index("ix_patients_organization_id", "patients", ["organization_id"])

    op.create_table(
        "patient_diagnoses",
        *_base_columns(),
        sa.Column(
            "patient_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("patients.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("code", sa.String(20), nullable=False),
        sa.Column("display", sa.String(500), nullable=False, server_default=""),
        sa.Column("role", enums["diagnosis_role"], nullable=False, server_default="secondary"),
        sa.Column("coding_system", sa.String(20), nullable=False, server_default="ICD-10"),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_patient_diagnoses_patient_id", "patient_diagnoses", ["patient_id"])
    op.create_index("ix_patient_diagnoses_code", "patient_diagnoses", ["code"])

    op.create_table(
        "metric_definitions",
        *_base_columns(),
        sa.Column("key", sa.String(100), nullable=False, unique=True),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("value_type", enums["value_type"], nullable=False),
        sa.Column("unit", sa.String(50), nullable=True),
        sa.Column("normal_low", sa.Float(), nullable=True),
        sa.Column("normal_high", sa.Float(), nullable=True),
    )

    op.create_table(
        "observations",
        *_base_columns(),
        sa.Column("patient_id", sa.String(255), nullable=False),
        sa.Column(
            "metric_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("metric_definitions.id"),
            nullable=False,
        ),
        sa.Column("value", postgresql.JSONB(), nullable=False),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("source", enums["observation_source"], nullable=False, server_default="manual"),
        sa.Column("context", enums["observation_context"], nullable=True),
    )
    op.create_index("ix_observations_patient_id", "observations", ["patient_id"])
    op.create_index("ix_observations_metric_id", "observations", ["metric_id"])
    op.create_index("ix_observations_patient_recorded", "observations", ["patient_id", "recorded_at"])

    op.create_table(
        "assessment_templates",
        *_base_columns(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("is_standardized", sa.Boolean(), nullable=False, server_default=sa.false()),
    )

    op.create_table(
        "assessment_template_items",
        *_base_columns(),
        sa.Column(
            "template_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("assessment_templates.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "metric_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("metric_definitions.id"),
            nullable=False,
        ),
        sa.Column("is_required", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_assessment_template_items_template_id", "assessment_template_items", ["template_id"])

    op.create_table(
        "assessments",
        *_base_columns(),
        sa.Column("patient_id", sa.String(255), nullable=False),
        sa.Column(
            "template_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("assessment_templates.id"),
            nullable=False,
        ),
        sa.Column("clinician_id", sa.String(255), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_assessments_patient_template_completed",
        "assessments",
        ["patient_id", "template_id", "completed_at"],
    )

    # Curated billing program catalog
    op.create_table(
        "billing_programs",
        *_base_columns(),
        sa.Column("program_type", sa.String(50), nullable=False),
        sa.Column("billing_program_code", sa.String(100), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False, server_default=""),
        sa.Column("cpt_codes", postgresql.JSONB(), nullable=False, server_default="[]"),
        sa.Column("diagnosis_match_rules", postgresql.JSONB(), nullable=False, server_default="[]"),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index("ix_billing_programs_program_type", "billing_programs", ["program_type"])

    # Engine-owned state
    op.create_table(
        "suggestions",
        *_base_columns(),
        sa.Column("patient_id", sa.String(255), nullable=False),
        sa.Column("kind", enums["suggestion_kind"], nullable=False),
        sa.Column("status", enums["suggestion_status"], nullable=False, server_default="pending"),
        sa.Column("candidate_programs", postgresql.JSONB(), nullable=False, server_default="[]"),
        sa.Column("matched_diagnoses", postgresql.JSONB(), nullable=False, server_default="[]"),
        sa.Column("metadata", postgresql.JSONB(), nullable=False, server_default="{}"),
        sa.Column("match_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("selected_program_type", sa.String(50), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed_by", sa.String(255), nullable=True),
        sa.Column("created_enrollment_ids", postgresql.JSONB(), nullable=False, server_default="[]"),
        sa.Column("source_type", enums["suggestion_source"], nullable=False, server_default="manual"),
        sa.Column("source_id", sa.String(255), nullable=True),
        sa.Column("pending_key", sa.String(300), nullable=True),
        sa.UniqueConstraint("pending_key", name="uq_suggestions_pending_key"),
    )
    op.create_index("ix_suggestions_patient_id", "suggestions", ["patient_id"])
    op.create_index("ix_suggestions_status", "suggestions", ["status"])

    op.create_table(
        "enrollments",
        *_base_columns(),
        sa.Column("patient_id", sa.String(255), nullable=False),
        sa.Column("program_type", sa.String(50), nullable=False),
        sa.Column("billing_program_code", sa.String(100), nullable=False),
        sa.Column("status", enums["enrollment_status"], nullable=False, server_default="active"),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("clinician_id", sa.String(255), nullable=True),
        sa.Column(
            "suggestion_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("suggestions.id"),
            nullable=True,
        ),
        sa.Column("notes", sa.Text(), nullable=True),
    )
    op.create_index("ix_enrollments_patient_id", "enrollments", ["patient_id"])
    op.create_index("ix_enrollments_suggestion_id", "enrollments", ["suggestion_id"])
    op.create_index(
        "ix_enrollments_patient_program_start",
        "enrollments",
        ["patient_id", "billing_program_code", "start_date"],
    )


def downgrade() -> None:
    op.drop_table("enrollments")
    op.drop_table("suggestions")
    op.drop_table("billing_programs")
    op.drop_table("assessments")
    op.drop_table("assessment_template_items")
    op.drop_table("assessment_templates")
    op.drop_table("observations")
    op.drop_table("metric_definitions")
    op.drop_table("patient_diagnoses")
    op.drop_table("patients")

    for name in reversed(list(ENUMS)):
        postgresql.ENUM(name=name).drop(op.get_bind(), checkfirst=True)
