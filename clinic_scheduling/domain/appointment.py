"""
Appointment aggregate.

The appointment owns its lifecycle::

    (new) --schedule--> SCHEDULED --reschedule--> RESCHEDULED
    SCHEDULED | RESCHEDULED --complete--> COMPLETED
    SCHEDULED | RESCHEDULED --cancel--> CANCELLED

COMPLETED and CANCELLED are terminal. Completing a completed appointment and
cancelling a cancelled one are idempotent no-ops; every other transition out
of a terminal status raises ``StatusConflictException``.

Every successful transition appends a domain event to the entity's outbox.
The outbox is drained with ``pull_events()`` once the change is persisted.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from clinic_scheduling.core.exceptions import StatusConflictException, ValidationException
from clinic_scheduling.domain import policies
from clinic_scheduling.domain.events import (
    AppointmentBooked,
    AppointmentCancelled,
    AppointmentCompleted,
    AppointmentRescheduled,
    DomainEvent,
)

NOTES_SEPARATOR = "; "


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    SCHEDULED = "scheduled"
    RESCHEDULED = "rescheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_active(self) -> bool:
        """Active appointments occupy a slot on the doctor's calendar."""
        return self in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        """Terminal appointments accept no further transitions."""
        return self in TERMINAL_STATUSES


ACTIVE_STATUSES = frozenset({AppointmentStatus.SCHEDULED, AppointmentStatus.RESCHEDULED})
TERMINAL_STATUSES = frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED})


def _resolve_now(now: datetime | None) -> datetime:
    if now is None:
        return datetime.now(UTC)
    policies.ensure_utc(now, "now")
    return now


class Appointment:
    """
    Appointment entity.

    Create new appointments with ``Appointment.schedule()`` and rebuild stored
    ones with ``Appointment.restore()``; state is only changed through the
    transition methods.
    """

    def __init__(
        self,
        *,
        id: UUID,
        patient_id: UUID,
        doctor_id: UUID,
        start_utc: datetime,
        end_utc: datetime,
        status: AppointmentStatus,
        notes: str | None = None,
        completed_utc: datetime | None = None,
        cancelled_utc: datetime | None = None,
        cancellation_reason: str | None = None,
        concurrency_token: str | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self._id = id
        self._patient_id = patient_id
        self._doctor_id = doctor_id
        self._start_utc = start_utc
        self._end_utc = end_utc
        self._status = status
        self._notes = notes
        self._completed_utc = completed_utc
        self._cancelled_utc = cancelled_utc
        self._cancellation_reason = cancellation_reason
        self._concurrency_token = concurrency_token
        self._created_at = created_at
        self._updated_at = updated_at
        self._events: list[DomainEvent] = []

    # Factories

    @classmethod
    def schedule(
        cls,
        patient_id: UUID,
        doctor_id: UUID,
        start_utc: datetime,
        end_utc: datetime,
        notes: str | None = None,
        *,
        now: datetime | None = None,
    ) -> "Appointment":
        """
        Create a new appointment in the SCHEDULED status.

        Args:
            patient_id: Patient identifier
            doctor_id: Doctor identifier
            start_utc: Start of the window, UTC
            end_utc: End of the window, UTC
            notes: Optional booking notes
            now: Current time, defaults to the wall clock

        Returns:
            The new appointment with an ``AppointmentBooked`` event pending

        Raises:
            ValidationException: If the window, notice or notes break an invariant
        """
        now = _resolve_now(now)
        policies.ensure_utc(start_utc, "start_utc")
        policies.ensure_utc(end_utc, "end_utc")
        policies.validate_window(start_utc, end_utc)
        policies.validate_booking_notice(start_utc, now)
        policies.validate_text(notes, "Notes", policies.MAX_NOTES_LENGTH)

        appointment = cls(
            id=uuid4(),
            patient_id=patient_id,
            doctor_id=doctor_id,
            start_utc=start_utc,
            end_utc=end_utc,
            status=AppointmentStatus.SCHEDULED,
            notes=policies.normalize_text(notes),
        )
        appointment._record(
            AppointmentBooked(
                appointment_id=appointment.id,
                patient_id=patient_id,
                doctor_id=doctor_id,
                start_utc=start_utc,
                end_utc=end_utc,
                occurred_at=now,
            )
        )
        return appointment

    @classmethod
    def restore(cls, row: dict[str, Any]) -> "Appointment":
        """Rebuild an appointment from a stored row without emitting events."""
        return cls(
            id=row["id"],
            patient_id=row["patient_id"],
            doctor_id=row["doctor_id"],
            start_utc=row["start_utc"],
            end_utc=row["end_utc"],
            status=AppointmentStatus(row["status"]),
            notes=row.get("notes"),
            completed_utc=row.get("completed_utc"),
            cancelled_utc=row.get("cancelled_utc"),
            cancellation_reason=row.get("cancellation_reason"),
            concurrency_token=row.get("concurrency_token"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    # Read-only state

    @property
    def id(self) -> UUID:
        return self._id

    @property
    def patient_id(self) -> UUID:
        return self._patient_id

    @property
    def doctor_id(self) -> UUID:
        return self._doctor_id

    @property
    def start_utc(self) -> datetime:
        return self._start_utc

    @property
    def end_utc(self) -> datetime:
        return self._end_utc

    @property
    def status(self) -> AppointmentStatus:
        return self._status

    @property
    def notes(self) -> str | None:
        return self._notes

    @property
    def completed_utc(self) -> datetime | None:
        return self._completed_utc

    @property
    def cancelled_utc(self) -> datetime | None:
        return self._cancelled_utc

    @property
    def cancellation_reason(self) -> str | None:
        return self._cancellation_reason

    @property
    def concurrency_token(self) -> str | None:
        return self._concurrency_token

    @property
    def created_at(self) -> datetime | None:
        return self._created_at

    @property
    def updated_at(self) -> datetime | None:
        return self._updated_at

    @property
    def pending_events(self) -> tuple[DomainEvent, ...]:
        """Events recorded since the last ``pull_events()``."""
        return tuple(self._events)

    # Transitions

    def ensure_reschedulable(self, now: datetime | None = None) -> None:
        """
        Check the guards that depend only on the current state and time.

        Raises:
            StatusConflictException: If the appointment is completed or cancelled
            RescheduleWindowClosedException: If the original start is within the cutoff
        """
        if self._status is AppointmentStatus.CANCELLED:
            raise StatusConflictException(
                "Cannot reschedule a cancelled appointment",
                code="appointment.cannot_reschedule_cancelled",
            )
        if self._status is AppointmentStatus.COMPLETED:
            raise StatusConflictException(
                "Cannot reschedule a completed appointment",
                code="appointment.cannot_reschedule_completed",
            )
        policies.ensure_reschedule_window_open(self._start_utc, _resolve_now(now))

    def reschedule(
        self,
        new_start_utc: datetime,
        new_end_utc: datetime,
        reason: str | None = None,
        *,
        now: datetime | None = None,
    ) -> tuple[datetime, datetime]:
        """
        Move the appointment to a new window.

        Args:
            new_start_utc: New start, UTC
            new_end_utc: New end, UTC
            reason: Optional reason, appended to the notes
            now: Current time, defaults to the wall clock

        Returns:
            The previous ``(start_utc, end_utc)`` window

        Raises:
            StatusConflictException: If the appointment is completed or cancelled
            RescheduleWindowClosedException: If the original start is within the cutoff
            ValidationException: If the new window, notice or reason is invalid
        """
        now = _resolve_now(now)
        self.ensure_reschedulable(now)

        policies.ensure_utc(new_start_utc, "new_start_utc")
        policies.ensure_utc(new_end_utc, "new_end_utc")
        policies.validate_window(new_start_utc, new_end_utc)
        policies.validate_text(reason, "Reason", policies.MAX_RESCHEDULE_REASON_LENGTH)
        policies.validate_reschedule_notice(new_start_utc, now)

        notes = self._appended_notes(policies.normalize_text(reason))

        previous = (self._start_utc, self._end_utc)
        self._start_utc = new_start_utc
        self._end_utc = new_end_utc
        self._status = AppointmentStatus.RESCHEDULED
        self._notes = notes
        self._record(
            AppointmentRescheduled(
                appointment_id=self._id,
                patient_id=self._patient_id,
                doctor_id=self._doctor_id,
                previous_start_utc=previous[0],
                previous_end_utc=previous[1],
                new_start_utc=new_start_utc,
                new_end_utc=new_end_utc,
                reason=policies.normalize_text(reason),
                occurred_at=now,
            )
        )
        return previous

    def complete(self, notes: str | None = None, *, now: datetime | None = None) -> bool:
        """
        Mark the appointment completed.

        Returns:
            True if the status changed, False if it was already completed

        Raises:
            StatusConflictException: If the appointment is cancelled
            ValidationException: If the notes are too long
        """
        now = _resolve_now(now)
        policies.validate_text(notes, "Notes", policies.MAX_NOTES_LENGTH)

        if self._status is AppointmentStatus.CANCELLED:
            raise StatusConflictException(
                "Cannot complete a cancelled appointment",
                code="appointment.cannot_complete_cancelled",
            )
        if self._status is AppointmentStatus.COMPLETED:
            return False

        completion_notes = policies.normalize_text(notes)
        self._status = AppointmentStatus.COMPLETED
        self._completed_utc = now
        if completion_notes is not None:
            self._notes = completion_notes
        self._record(
            AppointmentCompleted(
                appointment_id=self._id,
                patient_id=self._patient_id,
                doctor_id=self._doctor_id,
                completed_utc=now,
                notes=self._notes,
                occurred_at=now,
            )
        )
        return True

    def cancel(self, reason: str, *, now: datetime | None = None) -> bool:
        """
        Cancel the appointment.

        Returns:
            True if the status changed, False if it was already cancelled

        Raises:
            StatusConflictException: If the appointment is completed
            ValidationException: If the reason is blank or too long
        """
        now = _resolve_now(now)
        cancellation_reason = policies.normalize_text(reason)
        if cancellation_reason is None:
            raise ValidationException(
                "Cancellation reason is required",
                code="appointment.cancellation_reason_required",
            )
        policies.validate_text(
            cancellation_reason, "Cancellation reason", policies.MAX_CANCELLATION_REASON_LENGTH
        )

        if self._status is AppointmentStatus.COMPLETED:
            raise StatusConflictException(
                "Cannot cancel a completed appointment",
                code="appointment.cannot_cancel_completed",
            )
        if self._status is AppointmentStatus.CANCELLED:
            return False

        self._status = AppointmentStatus.CANCELLED
        self._cancelled_utc = now
        self._cancellation_reason = cancellation_reason
        self._record(
            AppointmentCancelled(
                appointment_id=self._id,
                patient_id=self._patient_id,
                doctor_id=self._doctor_id,
                cancelled_utc=now,
                cancellation_reason=cancellation_reason,
                occurred_at=now,
            )
        )
        return True

    # Persistence hooks

    def mark_persisted(self, concurrency_token: str, written_at: datetime) -> None:
        """Record the token and timestamp of a successful write."""
        self._concurrency_token = concurrency_token
        if self._created_at is None:
            self._created_at = written_at
        self._updated_at = written_at

    def pull_events(self) -> list[DomainEvent]:
        """Drain and return the pending events."""
        events, self._events = self._events, []
        return events

    def _record(self, event: DomainEvent) -> None:
        self._events.append(event)

    def _appended_notes(self, addition: str | None) -> str | None:
        if addition is None:
            return self._notes
        notes = f"{self._notes}{NOTES_SEPARATOR}{addition}" if self._notes else addition
        if len(notes) > policies.MAX_NOTES_LENGTH:
            raise ValidationException(
                f"Notes cannot exceed {policies.MAX_NOTES_LENGTH} characters",
                code="appointment.text_too_long",
            )
        return notes

    def __repr__(self) -> str:
        return (
            f"Appointment(id={self._id!s}, doctor_id={self._doctor_id!s}, "
            f"status={self._status.value}, start_utc={self._start_utc.isoformat()})"
        )
