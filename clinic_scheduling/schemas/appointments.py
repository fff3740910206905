"""Appointment schemas for request/response validation."""

from datetime import UTC, datetime
from typing import Annotated
from uuid import UUID

from pydantic import AfterValidator, AwareDatetime, BaseModel, Field, model_validator

from clinic_scheduling.domain.appointment import AppointmentStatus

__all__ = [
    "AppointmentConflictQuery",
    "AppointmentConflictResponse",
    "AppointmentFilters",
    "AppointmentListResponse",
    "AppointmentResponse",
    "AppointmentStatus",
    "BookAppointmentRequest",
    "BookAppointmentResult",
    "CancelAppointmentRequest",
    "CancelAppointmentResult",
    "CompleteAppointmentRequest",
    "CompleteAppointmentResult",
    "RescheduleAppointmentRequest",
    "RescheduleAppointmentResult",
]


def _to_utc(value: datetime) -> datetime:
    return value.astimezone(UTC)


# Any explicit offset is accepted and normalised; naive datetimes are rejected
UtcDatetime = Annotated[AwareDatetime, AfterValidator(_to_utc)]


class BookAppointmentRequest(BaseModel):
    """
    Schema for booking a new appointment.

    Text fields are length-checked by the domain after trimming.
    """

    patient_id: UUID
    doctor_id: UUID
    start: UtcDatetime
    end: UtcDatetime
    notes: str | None = None


class BookAppointmentResult(BaseModel):
    """Schema for a booked appointment."""

    id: UUID
    start_utc: datetime
    end_utc: datetime


class RescheduleAppointmentRequest(BaseModel):
    """Schema for moving an appointment to a new window."""

    new_start: UtcDatetime
    new_end: UtcDatetime
    reason: str | None = None


class RescheduleAppointmentResult(BaseModel):
    """Schema for a rescheduled appointment, including the window it left."""

    id: UUID
    start_utc: datetime
    end_utc: datetime
    previous_start_utc: datetime
    previous_end_utc: datetime


class CompleteAppointmentRequest(BaseModel):
    """Schema for completing an appointment."""

    notes: str | None = None


class CompleteAppointmentResult(BaseModel):
    """Schema for a completed appointment."""

    id: UUID
    status: AppointmentStatus
    completed_utc: datetime
    notes: str | None
    already_applied: bool = False


class CancelAppointmentRequest(BaseModel):
    """Schema for cancelling an appointment."""

    reason: str


class CancelAppointmentResult(BaseModel):
    """Schema for a cancelled appointment."""

    id: UUID
    status: AppointmentStatus
    cancelled_utc: datetime
    cancellation_reason: str
    already_applied: bool = False


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: UUID
    patient_id: UUID
    doctor_id: UUID
    start_utc: datetime
    end_utc: datetime
    status: AppointmentStatus
    notes: str | None = None
    completed_utc: datetime | None = None
    cancelled_utc: datetime | None = None
    cancellation_reason: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AppointmentListResponse(BaseModel):
    """Schema for paginated appointment list response."""

    total: int
    page: int
    page_size: int
    items: list[AppointmentResponse]


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering."""

    patient_id: UUID | None = None
    doctor_id: UUID | None = None
    status: AppointmentStatus | None = None
    start_from: AwareDatetime | None = None
    end_to: AwareDatetime | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1, le=100)

    @model_validator(mode="after")
    def validate_range(self) -> "AppointmentFilters":
        """Validate the date range is not inverted."""
        if self.start_from and self.end_to and self.start_from > self.end_to:
            raise ValueError("start_from must be before or equal to end_to")
        return self


class AppointmentConflictQuery(BaseModel):
    """Schema for the doctor availability check."""

    doctor_id: UUID
    start: UtcDatetime
    end: UtcDatetime
    exclude_id: UUID | None = None

    @model_validator(mode="after")
    def validate_window(self) -> "AppointmentConflictQuery":
        """Validate end time is after start time."""
        if self.end <= self.start:
            raise ValueError("End time must be after start time")
        return self


class AppointmentConflictResponse(BaseModel):
    """Schema for the availability check result."""

    doctor_id: UUID
    start_utc: datetime
    end_utc: datetime
    has_conflict: bool
