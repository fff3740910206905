"""Appointment endpoints."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Query, status

from clinic_scheduling.dependencies import AppointmentServiceDep
from clinic_scheduling.schemas.appointments import (
    AppointmentConflictQuery,
    AppointmentConflictResponse,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatus,
    BookAppointmentRequest,
    BookAppointmentResult,
    CancelAppointmentRequest,
    CancelAppointmentResult,
    CompleteAppointmentRequest,
    CompleteAppointmentResult,
    RescheduleAppointmentRequest,
    RescheduleAppointmentResult,
)

router = APIRouter()


@router.post(
    "",
    response_model=BookAppointmentResult,
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Book appointment",
)
async def book_appointment(
    data: BookAppointmentRequest,
    service: AppointmentServiceDep,
) -> BookAppointmentResult:
    """
    Book a new appointment with a doctor.

    Args:
        data: Patient, doctor, window and optional notes
        service: Appointment service

    Returns:
        Booked appointment ID and window
    """
    return await service.book_appointment(data)


@router.get(
    "",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List appointments",
)
async def list_appointments(
    service: AppointmentServiceDep,
    patient_id: UUID | None = Query(None),
    doctor_id: UUID | None = Query(None),
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    start_from: datetime | None = Query(None),
    end_to: datetime | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
) -> AppointmentListResponse:
    """
    List appointments with filtering, earliest start first.

    Args:
        service: Appointment service
        patient_id: Filter by patient
        doctor_id: Filter by doctor
        status_filter: Filter by status
        start_from: Only appointments starting at or after this time
        end_to: Only appointments ending at or before this time
        page: Page number
        page_size: Items per page

    Returns:
        Paginated list of appointments
    """
    filters = AppointmentFilters(
        patient_id=patient_id,
        doctor_id=doctor_id,
        status=status_filter,
        start_from=start_from,
        end_to=end_to,
        page=page,
        page_size=page_size,
    )
    return await service.list_appointments(filters)


@router.get(
    "/conflicts",
    response_model=AppointmentConflictResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Check doctor availability",
)
async def check_conflict(
    service: AppointmentServiceDep,
    doctor_id: UUID = Query(...),
    start: datetime = Query(...),
    end: datetime = Query(...),
    exclude_id: UUID | None = Query(None),
) -> AppointmentConflictResponse:
    """
    Check whether a doctor has an active appointment overlapping a window.

    Args:
        service: Appointment service
        doctor_id: Doctor to check
        start: Window start
        end: Window end
        exclude_id: Appointment to ignore

    Returns:
        Whether the window conflicts
    """
    query = AppointmentConflictQuery(
        doctor_id=doctor_id,
        start=start,
        end=end,
        exclude_id=exclude_id,
    )
    return await service.check_conflict(query)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: UUID,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """Get a specific appointment by ID."""
    return await service.get_appointment(appointment_id)


@router.post(
    "/{appointment_id}/reschedule",
    response_model=RescheduleAppointmentResult,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Reschedule appointment",
)
async def reschedule_appointment(
    appointment_id: UUID,
    data: RescheduleAppointmentRequest,
    service: AppointmentServiceDep,
) -> RescheduleAppointmentResult:
    """
    Move an appointment to a new window.

    Args:
        appointment_id: Appointment ID
        data: New window and optional reason
        service: Appointment service

    Returns:
        New and previous windows
    """
    return await service.reschedule_appointment(appointment_id, data)


@router.post(
    "/{appointment_id}/complete",
    response_model=CompleteAppointmentResult,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Complete appointment",
)
async def complete_appointment(
    appointment_id: UUID,
    data: CompleteAppointmentRequest,
    service: AppointmentServiceDep,
) -> CompleteAppointmentResult:
    """
    Mark an appointment completed. Repeating the call is safe.

    Args:
        appointment_id: Appointment ID
        data: Optional completion notes
        service: Appointment service

    Returns:
        Completion details
    """
    return await service.complete_appointment(appointment_id, data)


@router.post(
    "/{appointment_id}/cancel",
    response_model=CancelAppointmentResult,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Cancel appointment",
)
async def cancel_appointment(
    appointment_id: UUID,
    data: CancelAppointmentRequest,
    service: AppointmentServiceDep,
) -> CancelAppointmentResult:
    """
    Cancel an appointment. Repeating the call is safe.

    Args:
        appointment_id: Appointment ID
        data: Cancellation reason
        service: Appointment service

    Returns:
        Cancellation details
    """
    return await service.cancel_appointment(appointment_id, data)
