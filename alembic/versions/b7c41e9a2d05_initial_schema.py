"""initial schema

Revision ID: b7c41e9a2d05
Revises:
Create Date: 2026-10-19 09:00:00.000000

This migration:
1. Creates the enum types used by staff accounts, applications and messages
2. Creates staff_users
3. Creates applications with the unique application_number constraint
4. Creates application_sequences, the counter application numbers come from
5. Creates contact_messages

If applications were imported from an older system, seed the counter with
the highest imported number before taking submissions:

    INSERT INTO application_sequences (name, value)
    SELECT 'applications', COALESCE(MAX(SUBSTRING(application_number FROM 4)::bigint), 0)
    FROM applications;
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "b7c41e9a2d05"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


ENUMS = {
    "staff_role": ("admin", "staff"),
    "gender": ("male", "female"),
    "grade_level": (
        "nursery",
        "primary1",
        "primary2",
        "primary3",
        "primary4",
        "primary5",
        "middle1",
        "middle2",
        "middle3",
        "middle4",
        "high1",
        "high2",
        "high3",
    ),
    "language_proficiency": ("beginner", "intermediate", "advanced", "fluent"),
    "application_status": ("submitted", "under_review", "accepted", "rejected", "waiting_list"),
    "student_grade": ("preschool", "primary", "jhs", "shs", "other"),
    "inquiry_type": ("admission", "information", "visit", "partnership", "other"),
    "message_status": ("new", "read", "replied", "archived"),
    "message_priority": ("low", "medium", "high"),
}


def _enum(name: str) -> postgresql.ENUM:
    # Types are created up front with checkfirst, never by create_table
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _audit_columns() -> list[sa.Column]:
    """Primary key and timestamps (from BaseModel)."""
    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Create the back-office tables."""
    bind = op.get_bind()
    for name in ENUMS:
        _enum(name).create(bind, checkfirst=True)

    op.create_table(
        "staff_users",
        *_audit_columns(),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("full_name", sa.String(length=200), nullable=False),
        sa.Column("role", _enum("staff_role"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_staff_users_email", "staff_users", ["email"], unique=True)

    op.create_table(
        "applications",
        *_audit_columns(),
        sa.Column("application_number", sa.String(length=9), nullable=False),
        # Student
        sa.Column("first_name", sa.String(length=50), nullable=False),
        sa.Column("last_name", sa.String(length=50), nullable=False),
        sa.Column("birth_date", sa.Date(), nullable=False),
        sa.Column("gender", _enum("gender"), nullable=False),
        sa.Column("nationality", sa.String(length=50), nullable=False),
        # Contact
        sa.Column("parent_name", sa.String(length=100), nullable=False),
        sa.Column("parent_email", sa.String(length=255), nullable=False),
        sa.Column("parent_phone", sa.String(length=20), nullable=False),
        sa.Column("address", sa.String(length=200), nullable=False),
        sa.Column("city", sa.String(length=50), nullable=False),
        # Academic
        sa.Column("grade_level", _enum("grade_level"), nullable=False),
        sa.Column("previous_school", sa.String(length=100), nullable=False),
        sa.Column("language_proficiency", _enum("language_proficiency"), nullable=False),
        sa.Column("special_needs", sa.String(length=500), nullable=True),
        # Attachments (kind -> storage reference)
        sa.Column("documents", sa.JSON(), nullable=False),
        # Review
        sa.Column("status", _enum("application_status"), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("reviewed_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "submitted_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        # Request provenance
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        sa.Column("user_agent", sa.String(length=500), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("application_number", name="uq_applications_application_number"),
    )
    op.create_index("ix_applications_status", "applications", ["status"])
    op.create_index("ix_applications_grade_level", "applications", ["grade_level"])
    op.create_index("ix_applications_parent_email", "applications", ["parent_email"])
    op.create_index("ix_applications_submitted_at", "applications", ["submitted_at"])

    op.create_table(
        "application_sequences",
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("value", sa.BigInteger(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("name"),
    )

    op.create_table(
        "contact_messages",
        *_audit_columns(),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("subject", sa.String(length=200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("student_grade", _enum("student_grade"), nullable=False),
        sa.Column("inquiry_type", _enum("inquiry_type"), nullable=False),
        sa.Column("status", _enum("message_status"), nullable=False),
        sa.Column("priority", _enum("message_priority"), nullable=False),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("reply_message", sa.Text(), nullable=True),
        sa.Column("replied_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        sa.Column("user_agent", sa.String(length=500), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_contact_messages_status", "contact_messages", ["status"])
    op.create_index("ix_contact_messages_created_at", "contact_messages", ["created_at"])


def downgrade() -> None:
    """Drop everything upgrade created."""
    op.drop_index("ix_contact_messages_created_at", table_name="contact_messages")
    op.drop_index("ix_contact_messages_status", table_name="contact_messages")
    op.drop_table("contact_messages")

    op.drop_table("application_sequences")

    op.drop_index("ix_applications_submitted_at", table_name="applications")
    op.drop_index("ix_applications_parent_email", table_name="applications")
    op.drop_index("ix_applications_grade_level", table_name="applications")
    op.drop_index("ix_applications_status", table_name="applications")
    op.drop_table("applications")

    op.drop_index("ix_staff_users_email", table_name="staff_users")
    op.drop_table("staff_users")

    bind = op.get_bind()
    for name in reversed(list(ENUMS)):
        _enum(name).drop(bind, checkfirst=True)
