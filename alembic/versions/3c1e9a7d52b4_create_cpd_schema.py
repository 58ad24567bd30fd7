"""create cpd schema

Revision ID: 3c1e9a7d52b4
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3c1e9a7d52b4"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _id() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True)


def upgrade() -> None:
    op.create_table(
        "credentials",
        _id(),
        sa.Column("name", sa.String(length=255), nullable=False, unique=True),
        sa.Column("body", sa.String(length=255), nullable=False),
        sa.Column("region", sa.String(length=8), nullable=False),
        sa.Column("vertical", sa.String(length=64), nullable=False),
        sa.Column("hours_required", sa.Float(), nullable=False, server_default="0"),
        sa.Column("ethics_hours", sa.Float(), nullable=False, server_default="0"),
        sa.Column("structured_hours", sa.Float(), nullable=False, server_default="0"),
        sa.Column("cycle_length_years", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("category_rules", postgresql.JSONB(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_table(
        "rule_packs",
        _id(),
        sa.Column(
            "credential_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("credentials.id"),
            nullable=False,
        ),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("rules", postgresql.JSONB(), nullable=False),
        sa.Column("effective_from", sa.Date(), nullable=False),
        sa.Column("effective_to", sa.Date(), nullable=True),
        sa.Column("changelog", sa.Text(), nullable=True),
        sa.UniqueConstraint("credential_id", "version", name="uq_rule_pack_version"),
    )
    op.create_index(
        "ix_rule_packs_credential_from", "rule_packs", ["credential_id", "effective_from"]
    )

    op.create_table(
        "activities",
        _id(),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("publish_status", sa.String(length=16), nullable=False, server_default="draft"),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_table(
        "credit_mappings",
        _id(),
        sa.Column(
            "activity_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("activities.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("country", sa.String(length=8), nullable=False),
        sa.Column("credit_amount", sa.Float(), nullable=False),
        sa.Column("credit_unit", sa.String(length=32), nullable=False),
        sa.Column("credit_category", sa.String(length=64), nullable=False),
        sa.Column("structured", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("validation_method", sa.String(length=64), nullable=True),
        sa.Column("state_province", sa.Text(), nullable=True),
        sa.Column("exclusions", sa.Text(), nullable=True),
        sa.Column(
            "credential_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("credentials.id"),
            nullable=True,
        ),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index("ix_credit_mappings_activity_id", "credit_mappings", ["activity_id"])

    op.create_table(
        "user_credentials",
        _id(),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column(
            "credential_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("credentials.id"),
            nullable=False,
        ),
        sa.Column("jurisdiction", sa.String(length=16), nullable=True),
        sa.Column("renewal_deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("hours_completed", sa.Float(), nullable=False, server_default="0"),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.UniqueConstraint("user_id", "credential_id", name="uq_user_credential"),
    )
    op.create_index("ix_user_credentials_user_id", "user_credentials", ["user_id"])
    op.create_index(
        "uq_user_primary_credential",
        "user_credentials",
        ["user_id"],
        unique=True,
        postgresql_where=sa.text("is_primary"),
    )

    op.create_table(
        "cpd_records",
        _id(),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("hours", sa.Float(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("activity_type", sa.String(length=32), nullable=False),
        sa.Column("category", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("source", sa.String(length=32), nullable=False),
        sa.Column(
            "evidence_strength", sa.String(length=32), nullable=False, server_default="manual_only"
        ),
        sa.Column("provider", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("external_id", sa.String(length=255), nullable=True),
    )
    op.create_index("ix_cpd_records_user_id", "cpd_records", ["user_id"])

    op.create_table(
        "cpd_allocations",
        _id(),
        sa.Column(
            "cpd_record_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("cpd_records.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_credential_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("user_credentials.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("hours", sa.Float(), nullable=False),
        sa.UniqueConstraint(
            "cpd_record_id", "user_credential_id", name="uq_allocation_record_credential"
        ),
    )
    op.create_index(
        "ix_cpd_allocations_user_credential_id", "cpd_allocations", ["user_credential_id"]
    )

    op.create_table(
        "evidence",
        _id(),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column(
            "cpd_record_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("cpd_records.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("file_name", sa.String(length=500), nullable=False),
        sa.Column("file_type", sa.String(length=128), nullable=False),
        sa.Column("kind", sa.String(length=32), nullable=False, server_default="other"),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="inbox"),
    )
    op.create_index("ix_evidence_user_id", "evidence", ["user_id"])
    op.create_index("ix_evidence_cpd_record_id", "evidence", ["cpd_record_id"])

    op.create_table(
        "completion_rules",
        _id(),
        sa.Column(
            "cpd_record_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("cpd_records.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("rule_type", sa.String(length=32), nullable=False),
        sa.Column("config", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index("ix_completion_rules_cpd_record_id", "completion_rules", ["cpd_record_id"])

    op.create_table(
        "quizzes",
        _id(),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("answer_key", postgresql.JSONB(), nullable=False),
        sa.Column("pass_mark", sa.Integer(), nullable=False, server_default="70"),
        sa.Column("max_attempts", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("hours", sa.Float(), nullable=False, server_default="0"),
        sa.Column("category", sa.String(length=64), nullable=False),
        sa.Column("activity_type", sa.String(length=32), nullable=False),
        sa.Column(
            "activity_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("activities.id"),
            nullable=True,
        ),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_table(
        "quiz_attempts",
        _id(),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column(
            "quiz_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("quizzes.id"), nullable=False
        ),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("passed", sa.Boolean(), nullable=False),
        sa.Column("answers", postgresql.JSONB(), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_quiz_attempts_user_quiz", "quiz_attempts", ["user_id", "quiz_id"])

    op.create_table(
        "certificates",
        _id(),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("certificate_code", sa.String(length=64), nullable=False, unique=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("hours", sa.Float(), nullable=False),
        sa.Column("category", sa.String(length=64), nullable=False),
        sa.Column("activity_type", sa.String(length=32), nullable=False),
        sa.Column("credential_name", sa.String(length=255), nullable=True),
        sa.Column(
            "cpd_record_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("cpd_records.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("verification_url", sa.Text(), nullable=False),
        sa.Column("idempotency_key", sa.String(length=255), nullable=True, unique=True),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("metadata", postgresql.JSONB(), nullable=False, server_default="{}"),
    )
    op.create_index("ix_certificates_user_id", "certificates", ["user_id"])
    op.create_index(
        "uq_certificate_active_record",
        "certificates",
        ["cpd_record_id"],
        unique=True,
        postgresql_where=sa.text("status = 'active' AND cpd_record_id IS NOT NULL"),
    )

    op.create_table(
        "provider_tenants",
        _id(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("api_key_hash", sa.Text(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_table(
        "completion_events",
        _id(),
        sa.Column(
            "provider_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("provider_tenants.id"),
            nullable=False,
        ),
        sa.Column("idempotency_key", sa.String(length=255), nullable=False),
        sa.Column("fingerprint", sa.Text(), nullable=False),
        sa.Column("user_id", sa.String(length=255), nullable=True),
        sa.Column("external_user_ref", sa.String(length=255), nullable=True),
        sa.Column("activity_title", sa.String(length=500), nullable=False),
        sa.Column("hours", sa.Float(), nullable=False),
        sa.Column("category", sa.String(length=64), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column(
            "cpd_record_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("cpd_records.id"),
            nullable=True,
        ),
        sa.Column(
            "certificate_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("certificates.id"),
            nullable=True,
        ),
        sa.UniqueConstraint("provider_id", "idempotency_key", name="uq_completion_event_key"),
    )


def downgrade() -> None:
    op.drop_table("completion_events")
    op.drop_table("provider_tenants")
    op.drop_index("uq_certificate_active_record", table_name="certificates")
    op.drop_index("ix_certificates_user_id", table_name="certificates")
    op.drop_table("certificates")
    op.drop_index("ix_quiz_attempts_user_quiz", table_name="quiz_attempts")
    op.drop_table("quiz_attempts")
    op.drop_table("quizzes")
    op.drop_index("ix_completion_rules_cpd_record_id", table_name="completion_rules")
    op.drop_table("completion_rules")
    op.drop_index("ix_evidence_cpd_record_id", table_name="evidence")
    op.drop_index("ix_evidence_user_id", table_name="evidence")
    op.drop_table("evidence")
    op.drop_index("ix_cpd_allocations_user_credential_id", table_name="cpd_allocations")
    op.drop_table("cpd_allocations")
    op.drop_index("ix_cpd_records_user_id", table_name="cpd_records")
    op.drop_table("cpd_records")
    op.drop_index("uq_user_primary_credential", table_name="user_credentials")
    op.drop_index("ix_user_credentials_user_id", table_name="user_credentials")
    op.drop_table("user_credentials")
    op.drop_index("ix_credit_mappings_activity_id", table_name="credit_mappings")
    op.drop_table("credit_mappings")
    op.drop_table("activities")
    op.drop_index("ix_rule_packs_credential_from", table_name="rule_packs")
    op.drop_table("rule_packs")
    op.drop_table("credentials")
