"""Appointments table model using SQLAlchemy Core."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    MetaData,
    String,
    Table,
    Text,
    Uuid,
    text,
)

from clinic_scheduling.domain.appointment import ACTIVE_STATUSES, AppointmentStatus
from clinic_scheduling.domain.policies import (
    MAX_CANCELLATION_REASON_LENGTH,
    MAX_NOTES_LENGTH,
)
from clinic_scheduling.models.types import UtcDateTime

# Metadata for all tables
metadata = MetaData()

_STATUS_VALUES = ", ".join(f"'{status.value}'" for status in AppointmentStatus)
_ACTIVE_STATUS_VALUES = ", ".join(f"'{status.value}'" for status in sorted(ACTIVE_STATUSES))
_ACTIVE_PREDICATE = text(f"status IN ({_ACTIVE_STATUS_VALUES})")

# Appointments table
appointments = Table(
    "appointments",
    metadata,
    # Identifier assigned by the application (uuid4)
    Column("id", Uuid, primary_key=True),
    # References (existence-checked, never owned)
    Column("patient_id", Uuid, ForeignKey("patients.id", ondelete="RESTRICT"), nullable=False),
    Column("doctor_id", Uuid, ForeignKey("doctors.id", ondelete="RESTRICT"), nullable=False),
    # Window
    Column("start_utc", UtcDateTime, nullable=False),
    Column("end_utc", UtcDateTime, nullable=False),
    # Status management
    Column(
        "status",
        Text,
        nullable=False,
        server_default=AppointmentStatus.SCHEDULED.value,
    ),
    Column("notes", String(MAX_NOTES_LENGTH), nullable=True),
    Column("completed_utc", UtcDateTime, nullable=True),
    Column("cancelled_utc", UtcDateTime, nullable=True),
    Column("cancellation_reason", String(MAX_CANCELLATION_REASON_LENGTH), nullable=True),
    # Optimistic concurrency, replaced on every write
    Column("concurrency_token", String(32), nullable=False),
    # Audit fields
    Column("created_at", UtcDateTime, nullable=False),
    Column("updated_at", UtcDateTime, nullable=False),
    # Constraints
    CheckConstraint(f"status IN ({_STATUS_VALUES})", name="appointments_status_check"),
    CheckConstraint("start_utc < end_utc", name="appointments_window_check"),
)

# Range access path for the conflict query
Index(
    "ix_appointments_doctor_time_range",
    appointments.c.doctor_id,
    appointments.c.start_utc,
    appointments.c.end_utc,
)

# Catches identical-window double bookings between active appointments.
# Partial overlaps are only prevented by the serializable unit of work.
Index(
    "uq_appointments_doctor_active_window",
    appointments.c.doctor_id,
    appointments.c.start_utc,
    appointments.c.end_utc,
    unique=True,
    postgresql_where=_ACTIVE_PREDICATE,
    sqlite_where=_ACTIVE_PREDICATE,
)

# Patient-facing listings
Index(
    "ix_appointments_patient_start",
    appointments.c.patient_id,
    appointments.c.start_utc,
)
