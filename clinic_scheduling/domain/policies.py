"""
Scheduling policy table.

Single source of truth for every scheduling threshold. Request validation,
the appointment entity and the tests all read these values, so booking and
rescheduling rules cannot drift apart.
"""

from datetime import datetime, timedelta

from clinic_scheduling.core.exceptions import (
    RescheduleWindowClosedException,
    ValidationException,
)

MINIMUM_APPOINTMENT_DURATION = timedelta(minutes=10)
MAXIMUM_APPOINTMENT_DURATION = timedelta(hours=8)

# Advance notice required for the new slot
MINIMUM_BOOKING_ADVANCE = timedelta(minutes=15)
MINIMUM_RESCHEDULE_ADVANCE = timedelta(hours=2)

# No rescheduling once the original start is this close
RESCHEDULE_WINDOW_CUTOFF = timedelta(hours=24)

MAX_NOTES_LENGTH = 1024
MAX_CANCELLATION_REASON_LENGTH = 512
MAX_RESCHEDULE_REASON_LENGTH = 512


def _minutes(delta: timedelta) -> int:
    return int(delta.total_seconds() // 60)


def ensure_utc(value: datetime, field: str) -> None:
    """Reject naive datetimes and datetimes carrying a non-UTC offset."""
    offset = value.utcoffset()
    if offset is None:
        raise ValidationException(
            f"{field} must carry an explicit UTC timezone",
            code="appointment.naive_datetime",
        )
    if offset != timedelta(0):
        raise ValidationException(
            f"{field} must be expressed in UTC",
            code="appointment.non_utc_datetime",
        )


def validate_window(start: datetime, end: datetime) -> None:
    """
    Check ordering and duration of an appointment window.

    Raises:
        ValidationException: If start is not before end or the duration is
            outside the allowed bounds
    """
    if start >= end:
        raise ValidationException(
            "Start time must be before end time",
            code="appointment.invalid_window",
        )

    duration = end - start
    if duration < MINIMUM_APPOINTMENT_DURATION:
        raise ValidationException(
            f"Appointment must be at least {_minutes(MINIMUM_APPOINTMENT_DURATION)} minutes long",
            code="appointment.duration_too_short",
        )
    if duration > MAXIMUM_APPOINTMENT_DURATION:
        raise ValidationException(
            "Appointment cannot be longer than "
            f"{_minutes(MAXIMUM_APPOINTMENT_DURATION) // 60} hours",
            code="appointment.duration_too_long",
        )


def validate_booking_notice(start: datetime, now: datetime) -> None:
    """Require the booking lead time between now and the requested start."""
    if start < now + MINIMUM_BOOKING_ADVANCE:
        raise ValidationException(
            "Appointment must be scheduled at least "
            f"{_minutes(MINIMUM_BOOKING_ADVANCE)} minutes in advance",
            code="appointment.insufficient_booking_notice",
        )


def validate_reschedule_notice(new_start: datetime, now: datetime) -> None:
    """Require the reschedule lead time between now and the new start."""
    if new_start < now + MINIMUM_RESCHEDULE_ADVANCE:
        raise ValidationException(
            "Appointment must be rescheduled at least "
            f"{_minutes(MINIMUM_RESCHEDULE_ADVANCE) // 60} hours in advance",
            code="appointment.insufficient_reschedule_notice",
        )


def ensure_reschedule_window_open(original_start: datetime, now: datetime) -> None:
    """
    Block rescheduling once the original start is within the cutoff.

    Applies regardless of how far out the requested new slot is.
    """
    if original_start - now <= RESCHEDULE_WINDOW_CUTOFF:
        hours = _minutes(RESCHEDULE_WINDOW_CUTOFF) // 60
        raise RescheduleWindowClosedException(
            f"Appointments cannot be rescheduled within {hours} hours of the start time"
        )


def validate_text(value: str | None, field: str, max_length: int) -> None:
    """Reject text whose trimmed form is longer than the policy bound."""
    text = normalize_text(value)
    if text is not None and len(text) > max_length:
        raise ValidationException(
            f"{field} cannot exceed {max_length} characters",
            code="appointment.text_too_long",
        )


def normalize_text(value: str | None) -> str | None:
    """Trim text, treating blank strings as absent."""
    if value is None or not value.strip():
        return None
    return value.strip()
