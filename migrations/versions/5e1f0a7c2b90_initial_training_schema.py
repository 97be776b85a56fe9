"""initial_training_schema

Create users, rotations, procedures, requirements, log_entries and
verifications tables.

Revision ID: 5e1f0a7c2b90
Revises:
Create Date: 2026-10-19 09:30:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "5e1f0a7c2b90"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "users" not in existing_tables:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=True),
            sa.Column("email", sa.String(length=200), nullable=False),
            sa.Column("role", sa.String(length=20), nullable=False, server_default="INTERN"),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("email"),
        )
        op.create_index("ix_users_role", "users", ["role"])

    if "rotations" not in existing_tables:
        op.create_table(
            "rotations",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("state", sa.String(length=20), nullable=False, server_default="NOT_STARTED"),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("name"),
        )
        op.create_index("ix_rotations_is_active", "rotations", ["is_active"])

    if "procedures" not in existing_tables:
        op.create_table(
            "procedures",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("rotation_id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.ForeignKeyConstraint(["rotation_id"], ["rotations.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("rotation_id", "name", name="uq_procedure_rotation_name"),
        )
        op.create_index("ix_procedures_rotation_id", "procedures", ["rotation_id"])

    if "requirements" not in existing_tables:
        op.create_table(
            "requirements",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("rotation_id", sa.Integer(), nullable=False),
            sa.Column("procedure_id", sa.Integer(), nullable=False),
            sa.Column("min_count", sa.Integer(), nullable=False, server_default="1"),
            sa.ForeignKeyConstraint(["rotation_id"], ["rotations.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["procedure_id"], ["procedures.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("rotation_id", "procedure_id", name="uq_requirement_rotation_procedure"),
            sa.CheckConstraint("min_count >= 1", name="ck_requirement_min_count"),
        )
        op.create_index("ix_requirements_rotation_id", "requirements", ["rotation_id"])

    if "log_entries" not in existing_tables:
        op.create_table(
            "log_entries",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("intern_id", sa.Integer(), nullable=False),
            sa.Column("procedure_id", sa.Integer(), nullable=False),
            sa.Column("date", sa.Date(), nullable=False),
            sa.Column("count", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["intern_id"], ["users.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["procedure_id"], ["procedures.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.CheckConstraint("count >= 1", name="ck_log_entry_count"),
        )
        op.create_index("ix_log_entries_intern_date", "log_entries", ["intern_id", "date"])
        op.create_index("ix_log_entries_created_at", "log_entries", ["created_at"])

    if "verifications" not in existing_tables:
        op.create_table(
            "verifications",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("log_entry_id", sa.Integer(), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="PENDING"),
            sa.Column("verifier_id", sa.Integer(), nullable=True),
            sa.Column("timestamp", sa.DateTime(), nullable=True),
            sa.Column("reason", sa.String(length=500), nullable=True),
            sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
            sa.ForeignKeyConstraint(["log_entry_id"], ["log_entries.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["verifier_id"], ["users.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("log_entry_id"),
        )
        op.create_index("ix_verifications_status", "verifications", ["status"])


def downgrade():
    for index_name, table in (
        ("ix_verifications_status", "verifications"),
        ("ix_log_entries_created_at", "log_entries"),
        ("ix_log_entries_intern_date", "log_entries"),
        ("ix_requirements_rotation_id", "requirements"),
        ("ix_procedures_rotation_id", "procedures"),
        ("ix_rotations_is_active", "rotations"),
        ("ix_users_role", "users"),
    ):
        op.drop_index(index_name, table_name=table)
    for table in ("verifications", "log_entries", "requirements", "procedures", "rotations", "users"):
        op.drop_table(table)
