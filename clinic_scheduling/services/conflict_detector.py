"""
Doctor calendar conflict detection.

Two windows ``[a_start, a_end)`` and ``[b_start, b_end)`` overlap iff
``a_start < b_end and b_start < a_end``. Touching windows (one ends exactly
when the other starts) do not overlap. ``overlap_condition`` is the only
implementation of the test; Book, Reschedule and the availability query all
go through ``ConflictDetector``.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import and_, exists, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from clinic_scheduling.domain.appointment import ACTIVE_STATUSES
from clinic_scheduling.models.appointments import appointments


def overlap_condition(
    doctor_id: UUID,
    window_start: datetime,
    window_end: datetime,
    exclude_id: UUID | None = None,
) -> ColumnElement[bool]:
    """Build the WHERE clause matching active appointments that overlap a window."""
    conditions = [
        appointments.c.doctor_id == doctor_id,
        appointments.c.status.in_([status.value for status in ACTIVE_STATUSES]),
        appointments.c.start_utc < window_end,
        appointments.c.end_utc > window_start,
    ]
    if exclude_id is not None:
        conditions.append(appointments.c.id != exclude_id)
    return and_(*conditions)


class ConflictDetector:
    """Answers whether a doctor already has an active appointment in a window."""

    def __init__(self, db: AsyncSession):
        """Initialize detector with database session."""
        self.db = db

    async def has_conflict(
        self,
        doctor_id: UUID,
        window_start: datetime,
        window_end: datetime,
        exclude_id: UUID | None = None,
    ) -> bool:
        """
        Check for an overlapping active appointment in a single round trip.

        Args:
            doctor_id: Doctor whose calendar is checked
            window_start: Start of the requested window
            window_end: End of the requested window
            exclude_id: Appointment to ignore, used when it is the one being moved

        Returns:
            True if any active appointment overlaps the window
        """
        stmt = select(
            exists().where(overlap_condition(doctor_id, window_start, window_end, exclude_id))
        )
        result = await self.db.execute(stmt)
        return bool(result.scalar())
