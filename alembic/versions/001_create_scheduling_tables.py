"""Create patients, doctors and appointments tables.

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ACTIVE_STATUS_PREDICATE = sa.text("status IN ('scheduled', 'rescheduled')")


def upgrade() -> None:
    """Upgrade database schema."""
    op.create_table(
        "patients",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("full_name", sa.Text(), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "doctors",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("full_name", sa.Text(), nullable=False),
        sa.Column("specialty", sa.String(length=200), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "appointments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("patient_id", sa.Uuid(), nullable=False),
        sa.Column("doctor_id", sa.Uuid(), nullable=False),
        sa.Column("start_utc", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_utc", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.Text(), server_default="scheduled", nullable=False),
        sa.Column("notes", sa.String(length=1024), nullable=True),
        sa.Column("completed_utc", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_utc", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancellation_reason", sa.String(length=512), nullable=True),
        sa.Column("concurrency_token", sa.String(length=32), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["patient_id"], ["patients.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["doctor_id"], ["doctors.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "status IN ('scheduled', 'rescheduled', 'completed', 'cancelled')",
            name="appointments_status_check",
        ),
        sa.CheckConstraint("start_utc < end_utc", name="appointments_window_check"),
    )

    # Range access path for the conflict query
    op.create_index(
        "ix_appointments_doctor_time_range",
        "appointments",
        ["doctor_id", "start_utc", "end_utc"],
    )

    # Identical active windows for one doctor are rejected by the store
    op.create_index(
        "uq_appointments_doctor_active_window",
        "appointments",
        ["doctor_id", "start_utc", "end_utc"],
        unique=True,
        postgresql_where=ACTIVE_STATUS_PREDICATE,
        sqlite_where=ACTIVE_STATUS_PREDICATE,
    )

    # Patient-facing listings
    op.create_index(
        "ix_appointments_patient_start",
        "appointments",
        ["patient_id", "start_utc"],
    )


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_index("ix_appointments_patient_start", table_name="appointments")
    op.drop_index("uq_appointments_doctor_active_window", table_name="appointments")
    op.drop_index("ix_appointments_doctor_time_range", table_name="appointments")
    op.drop_table("appointments")
    op.drop_table("doctors")
    op.drop_table("patients")
