"""FastAPI dependencies."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduling.config import settings
from clinic_scheduling.core.redis_client import CacheManager, get_redis_client
from clinic_scheduling.database import get_db
from clinic_scheduling.repositories.reference_directory import ReferenceDirectory
from clinic_scheduling.services.appointment_service import AppointmentService, Clock, utc_now
from clinic_scheduling.services.event_publisher import EventPublisher, create_event_publisher


def get_cache_manager() -> CacheManager | None:
    """
    Get the Redis cache manager.

    Returns:
        Cache manager, or None when Redis is not configured
    """
    client = get_redis_client()
    if client is None:
        return None
    return CacheManager(redis_client=client)


@lru_cache
def get_event_publisher() -> EventPublisher:
    """Get the process-wide event publisher."""
    return create_event_publisher()


def get_clock() -> Clock:
    """Get the clock used for notice windows and transition timestamps."""
    return utc_now


async def get_appointment_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    cache_manager: Annotated[CacheManager | None, Depends(get_cache_manager)],
    publisher: Annotated[EventPublisher, Depends(get_event_publisher)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> AppointmentService:
    """
    Build the appointment service for one request.

    Args:
        db: Database session
        cache_manager: Optional reference cache
        publisher: Domain event publisher
        clock: Time source

    Returns:
        Appointment service bound to the request's session
    """
    return AppointmentService(
        db,
        directory=ReferenceDirectory(
            db,
            cache_manager=cache_manager,
            cache_ttl=settings.reference_cache_ttl_seconds,
        ),
        publisher=publisher,
        clock=clock,
        isolation_level=settings.scheduling_isolation_level,
    )


# Type aliases for dependency injection
AppointmentServiceDep = Annotated[AppointmentService, Depends(get_appointment_service)]
