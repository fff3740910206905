"""Appointment service for business logic."""

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduling.config import settings
from clinic_scheduling.core.exceptions import (
    AppException,
    ConcurrencyConflictException,
    NotFoundException,
    ResourceConflictException,
)
from clinic_scheduling.database import begin_unit_of_work, is_serialization_failure
from clinic_scheduling.domain import policies
from clinic_scheduling.domain.appointment import Appointment
from clinic_scheduling.repositories.appointment_repository import AppointmentRepository
from clinic_scheduling.repositories.reference_directory import ReferenceDirectory
from clinic_scheduling.schemas.appointments import (
    AppointmentConflictQuery,
    AppointmentConflictResponse,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    BookAppointmentRequest,
    BookAppointmentResult,
    CancelAppointmentRequest,
    CancelAppointmentResult,
    CompleteAppointmentRequest,
    CompleteAppointmentResult,
    RescheduleAppointmentRequest,
    RescheduleAppointmentResult,
)
from clinic_scheduling.services.conflict_detector import ConflictDetector
from clinic_scheduling.services.event_publisher import EventPublisher, create_event_publisher

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]

# Name of the partial unique index guarding identical active windows
WINDOW_INDEX_NAME = "uq_appointments_doctor_active_window"


def utc_now() -> datetime:
    """Current wall-clock time in UTC."""
    return datetime.now(UTC)


def _is_window_collision(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return WINDOW_INDEX_NAME in message or "appointments.doctor_id" in message


def _translate_storage_error(exc: BaseException) -> AppException | None:
    """Map storage-layer failures of a scheduling write onto domain errors."""
    if isinstance(exc, IntegrityError) and _is_window_collision(exc):
        return ResourceConflictException()
    if isinstance(exc, DBAPIError) and is_serialization_failure(exc):
        return ConcurrencyConflictException()
    return None


class AppointmentService:
    """
    Service for booking, rescheduling, completing and cancelling appointments.

    Each command is one unit of work: read, check, transition, write, commit.
    Any failure rolls the session back, and domain events are published only
    after the commit succeeds.

    Book and Reschedule run their check-then-write at ``isolation_level``
    (SERIALIZABLE by default). Under weaker isolation two concurrent requests
    for the same doctor can both pass the overlap check; the partial unique
    index then only stops exact duplicates.
    """

    def __init__(
        self,
        db: AsyncSession,
        *,
        directory: ReferenceDirectory | None = None,
        publisher: EventPublisher | None = None,
        clock: Clock = utc_now,
        isolation_level: str | None = settings.scheduling_isolation_level,
    ):
        """Initialize service with database session and collaborators."""
        self.db = db
        self.repository = AppointmentRepository(db)
        self.conflicts = ConflictDetector(db)
        self.directory = directory or ReferenceDirectory(db)
        self.publisher = publisher or create_event_publisher()
        self.clock = clock
        self.isolation_level = isolation_level

    def _now(self) -> datetime:
        now = self.clock()
        policies.ensure_utc(now, "now")
        return now

    @asynccontextmanager
    async def _unit_of_work(
        self,
        operation: str,
        *,
        isolated: bool = False,
        **context: Any,
    ) -> AsyncIterator[None]:
        """Run a command's reads and writes in one transaction and commit it."""
        try:
            if isolated:
                await begin_unit_of_work(self.db, self.isolation_level)
            yield
            await self.db.commit()
        except BaseException as exc:
            await self.db.rollback()
            translated = _translate_storage_error(exc)
            error = translated or exc
            if isinstance(error, AppException):
                logger.info(
                    "appointment_command_rejected",
                    operation=operation,
                    code=error.code,
                    reason=error.message,
                    **context,
                )
            if translated is not None:
                raise translated from exc
            raise

    async def _load(self, appointment_id: UUID) -> Appointment:
        appointment = await self.repository.get(appointment_id)
        if appointment is None:
            raise NotFoundException(
                f"Appointment with ID {appointment_id} not found",
                code="appointment.not_found",
            )
        return appointment

    async def _publish(self, appointment: Appointment) -> None:
        await self.publisher.publish(appointment.pull_events())

    async def book_appointment(self, data: BookAppointmentRequest) -> BookAppointmentResult:
        """
        Book a new appointment.

        Args:
            data: Patient, doctor, UTC window and optional notes

        Returns:
            The new appointment's ID and window

        Raises:
            ValidationException: If the window, notice or notes are invalid
            NotFoundException: If the patient or doctor does not exist
            ResourceConflictException: If the doctor is already booked in the window
        """
        now = self._now()
        context = {"doctor_id": str(data.doctor_id), "patient_id": str(data.patient_id)}

        async with self._unit_of_work("book", isolated=True, **context):
            policies.validate_window(data.start, data.end)
            policies.validate_booking_notice(data.start, now)
            policies.validate_text(data.notes, "Notes", policies.MAX_NOTES_LENGTH)

            if not await self.directory.patient_exists(data.patient_id):
                raise NotFoundException(
                    f"Patient with ID {data.patient_id} not found", code="patient.not_found"
                )
            if not await self.directory.doctor_exists(data.doctor_id):
                raise NotFoundException(
                    f"Doctor with ID {data.doctor_id} not found", code="doctor.not_found"
                )

            if await self.conflicts.has_conflict(data.doctor_id, data.start, data.end):
                raise ResourceConflictException()

            appointment = Appointment.schedule(
                patient_id=data.patient_id,
                doctor_id=data.doctor_id,
                start_utc=data.start,
                end_utc=data.end,
                notes=data.notes,
                now=now,
            )
            await self.repository.add(appointment, now)

        await self._publish(appointment)
        logger.info(
            "appointment_booked",
            appointment_id=str(appointment.id),
            start_utc=appointment.start_utc.isoformat(),
            end_utc=appointment.end_utc.isoformat(),
            **context,
        )
        return BookAppointmentResult(
            id=appointment.id,
            start_utc=appointment.start_utc,
            end_utc=appointment.end_utc,
        )

    async def reschedule_appointment(
        self,
        appointment_id: UUID,
        data: RescheduleAppointmentRequest,
    ) -> RescheduleAppointmentResult:
        """
        Move an appointment to a new window.

        Two notice rules apply: the new start must be far enough ahead, and
        the original start must still be outside the reschedule cutoff.

        Raises:
            ValidationException: If the new window, notice or reason is invalid
            NotFoundException: If the appointment does not exist
            StatusConflictException: If the appointment is completed or cancelled
            RescheduleWindowClosedException: If the original start is too close
            ResourceConflictException: If the doctor is already booked in the new window
            ConcurrencyConflictException: If the appointment changed since it was read
        """
        now = self._now()
        context = {"appointment_id": str(appointment_id)}

        async with self._unit_of_work("reschedule", isolated=True, **context):
            policies.validate_window(data.new_start, data.new_end)
            policies.validate_reschedule_notice(data.new_start, now)
            policies.validate_text(data.reason, "Reason", policies.MAX_RESCHEDULE_REASON_LENGTH)

            appointment = await self._load(appointment_id)
            appointment.ensure_reschedulable(now)

            if await self.conflicts.has_conflict(
                appointment.doctor_id,
                data.new_start,
                data.new_end,
                exclude_id=appointment.id,
            ):
                raise ResourceConflictException()

            previous_start, previous_end = appointment.reschedule(
                data.new_start, data.new_end, data.reason, now=now
            )
            await self.repository.save(appointment, now)

        await self._publish(appointment)
        logger.info(
            "appointment_rescheduled",
            doctor_id=str(appointment.doctor_id),
            previous_start_utc=previous_start.isoformat(),
            start_utc=appointment.start_utc.isoformat(),
            **context,
        )
        return RescheduleAppointmentResult(
            id=appointment.id,
            start_utc=appointment.start_utc,
            end_utc=appointment.end_utc,
            previous_start_utc=previous_start,
            previous_end_utc=previous_end,
        )

    async def complete_appointment(
        self,
        appointment_id: UUID,
        data: CompleteAppointmentRequest,
    ) -> CompleteAppointmentResult:
        """
        Mark an appointment completed.

        Completing an already completed appointment returns the recorded
        completion unchanged with ``already_applied`` set.

        Raises:
            ValidationException: If the notes are too long
            NotFoundException: If the appointment does not exist
            StatusConflictException: If the appointment is cancelled
            ConcurrencyConflictException: If the appointment changed since it was read
        """
        now = self._now()
        context = {"appointment_id": str(appointment_id)}

        async with self._unit_of_work("complete", **context):
            policies.validate_text(data.notes, "Notes", policies.MAX_NOTES_LENGTH)
            appointment = await self._load(appointment_id)
            changed = appointment.complete(data.notes, now=now)
            if changed:
                await self.repository.save(appointment, now)

        if changed:
            await self._publish(appointment)
            logger.info("appointment_completed", **context)
        else:
            logger.info("appointment_already_completed", **context)

        return CompleteAppointmentResult(
            id=appointment.id,
            status=appointment.status,
            completed_utc=appointment.completed_utc,  # type: ignore[arg-type]
            notes=appointment.notes,
            already_applied=not changed,
        )

    async def cancel_appointment(
        self,
        appointment_id: UUID,
        data: CancelAppointmentRequest,
    ) -> CancelAppointmentResult:
        """
        Cancel an appointment.

        Cancelling an already cancelled appointment returns the recorded
        cancellation unchanged with ``already_applied`` set.

        Raises:
            ValidationException: If the reason is blank or too long
            NotFoundException: If the appointment does not exist
            StatusConflictException: If the appointment is completed
            ConcurrencyConflictException: If the appointment changed since it was read
        """
        now = self._now()
        context = {"appointment_id": str(appointment_id)}

        async with self._unit_of_work("cancel", **context):
            appointment = await self._load(appointment_id)
            changed = appointment.cancel(data.reason, now=now)
            if changed:
                await self.repository.save(appointment, now)

        if changed:
            await self._publish(appointment)
            logger.info("appointment_cancelled", **context)
        else:
            logger.info("appointment_already_cancelled", **context)

        return CancelAppointmentResult(
            id=appointment.id,
            status=appointment.status,
            cancelled_utc=appointment.cancelled_utc,  # type: ignore[arg-type]
            cancellation_reason=appointment.cancellation_reason,  # type: ignore[arg-type]
            already_applied=not changed,
        )

    async def get_appointment(self, appointment_id: UUID) -> AppointmentResponse:
        """
        Get appointment by ID.

        Raises:
            NotFoundException: If appointment not found
        """
        appointment = await self._load(appointment_id)
        return AppointmentResponse.model_validate(appointment)

    async def list_appointments(self, filters: AppointmentFilters) -> AppointmentListResponse:
        """List appointments with filtering and pagination, earliest first."""
        rows, total = await self.repository.search(filters)
        return AppointmentListResponse(
            total=total,
            page=filters.page,
            page_size=filters.page_size,
            items=[AppointmentResponse.model_validate(row) for row in rows],
        )

    async def check_conflict(self, query: AppointmentConflictQuery) -> AppointmentConflictResponse:
        """Report whether a doctor has an active appointment overlapping a window."""
        has_conflict = await self.conflicts.has_conflict(
            query.doctor_id, query.start, query.end, exclude_id=query.exclude_id
        )
        return AppointmentConflictResponse(
            doctor_id=query.doctor_id,
            start_utc=query.start,
            end_utc=query.end,
            has_conflict=has_conflict,
        )
