"""Appointment lifecycle domain events."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    """Base class for events recorded by the appointment entity."""

    appointment_id: UUID
    patient_id: UUID
    doctor_id: UUID
    occurred_at: datetime = field(default_factory=_utc_now)

    @property
    def name(self) -> str:
        """Event name used in logs."""
        return type(self).__name__


@dataclass(frozen=True, kw_only=True)
class AppointmentBooked(DomainEvent):
    """A new appointment was scheduled."""

    start_utc: datetime
    end_utc: datetime


@dataclass(frozen=True, kw_only=True)
class AppointmentRescheduled(DomainEvent):
    """An appointment moved to a new window."""

    previous_start_utc: datetime
    previous_end_utc: datetime
    new_start_utc: datetime
    new_end_utc: datetime
    reason: str | None = None


@dataclass(frozen=True, kw_only=True)
class AppointmentCompleted(DomainEvent):
    """An appointment was marked completed."""

    completed_utc: datetime
    notes: str | None = None


@dataclass(frozen=True, kw_only=True)
class AppointmentCancelled(DomainEvent):
    """An appointment was cancelled."""

    cancelled_utc: datetime
    cancellation_reason: str
