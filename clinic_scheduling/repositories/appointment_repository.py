"""Persistence of appointment aggregates."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import and_, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduling.core.exceptions import ConcurrencyConflictException
from clinic_scheduling.domain.appointment import Appointment
from clinic_scheduling.models.appointments import appointments
from clinic_scheduling.schemas.appointments import AppointmentFilters


def _new_token() -> str:
    return uuid4().hex


def _state_values(appointment: Appointment) -> dict[str, Any]:
    """Columns a transition may change."""
    return {
        "start_utc": appointment.start_utc,
        "end_utc": appointment.end_utc,
        "status": appointment.status.value,
        "notes": appointment.notes,
        "completed_utc": appointment.completed_utc,
        "cancelled_utc": appointment.cancelled_utc,
        "cancellation_reason": appointment.cancellation_reason,
    }


class AppointmentRepository:
    """Loads and stores appointments. Does not commit; the caller owns the transaction."""

    def __init__(self, db: AsyncSession):
        """Initialize repository with database session."""
        self.db = db

    async def get(self, appointment_id: UUID) -> Appointment | None:
        """Load an appointment by ID."""
        stmt = select(appointments).where(appointments.c.id == appointment_id)
        result = await self.db.execute(stmt)
        row = result.mappings().first()
        if row is None:
            return None
        return Appointment.restore(dict(row))

    async def add(self, appointment: Appointment, written_at: datetime) -> None:
        """Insert a newly scheduled appointment."""
        token = _new_token()
        stmt = insert(appointments).values(
            id=appointment.id,
            patient_id=appointment.patient_id,
            doctor_id=appointment.doctor_id,
            concurrency_token=token,
            created_at=written_at,
            updated_at=written_at,
            **_state_values(appointment),
        )
        await self.db.execute(stmt)
        appointment.mark_persisted(token, written_at)

    async def save(self, appointment: Appointment, written_at: datetime) -> None:
        """
        Write an appointment's state if nobody else wrote it since it was loaded.

        Raises:
            ConcurrencyConflictException: If the stored concurrency token no
                longer matches the one the appointment was loaded with
        """
        token = _new_token()
        stmt = (
            update(appointments)
            .where(
                and_(
                    appointments.c.id == appointment.id,
                    appointments.c.concurrency_token == appointment.concurrency_token,
                )
            )
            .values(
                concurrency_token=token,
                updated_at=written_at,
                **_state_values(appointment),
            )
        )
        result = await self.db.execute(stmt)
        if result.rowcount != 1:
            raise ConcurrencyConflictException()
        appointment.mark_persisted(token, written_at)

    async def search(self, filters: AppointmentFilters) -> tuple[list[dict[str, Any]], int]:
        """
        List appointments matching the filters.

        Returns:
            Page of rows ordered by start time, and the total match count
        """
        conditions = []

        if filters.patient_id:
            conditions.append(appointments.c.patient_id == filters.patient_id)

        if filters.doctor_id:
            conditions.append(appointments.c.doctor_id == filters.doctor_id)

        if filters.status:
            conditions.append(appointments.c.status == filters.status.value)

        if filters.start_from:
            conditions.append(appointments.c.start_utc >= filters.start_from)

        if filters.end_to:
            conditions.append(appointments.c.end_utc <= filters.end_to)

        where = and_(*conditions) if conditions else None

        count_stmt = select(func.count()).select_from(appointments)
        stmt = select(appointments)
        if where is not None:
            count_stmt = count_stmt.where(where)
            stmt = stmt.where(where)

        total_result = await self.db.execute(count_stmt)
        total = total_result.scalar() or 0

        offset = (filters.page - 1) * filters.page_size
        stmt = (
            stmt.order_by(appointments.c.start_utc.asc(), appointments.c.id.asc())
            .limit(filters.page_size)
            .offset(offset)
        )
        result = await self.db.execute(stmt)
        return [dict(row) for row in result.mappings().all()], total
