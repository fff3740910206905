"""Tests for domain event publication."""

from datetime import UTC, datetime
from uuid import uuid4

import pytest

from clinic_scheduling.domain.events import (
    AppointmentBooked,
    AppointmentCancelled,
    DomainEvent,
)
from clinic_scheduling.services.event_publisher import EventPublisher, create_event_publisher

NOW = datetime(2025, 2, 20, 9, 0, tzinfo=UTC)


def booked_event() -> AppointmentBooked:
    return AppointmentBooked(
        appointment_id=uuid4(),
        patient_id=uuid4(),
        doctor_id=uuid4(),
        start_utc=NOW,
        end_utc=NOW,
        occurred_at=NOW,
    )


@pytest.mark.asyncio
async def test_handlers_receive_matching_events():
    """Handlers subscribed to a base type see every subclass."""
    publisher = EventPublisher()
    seen_all: list[DomainEvent] = []
    seen_cancelled: list[DomainEvent] = []

    async def on_any(event: DomainEvent) -> None:
        seen_all.append(event)

    async def on_cancelled(event: DomainEvent) -> None:
        seen_cancelled.append(event)

    publisher.subscribe(DomainEvent, on_any)
    publisher.subscribe(AppointmentCancelled, on_cancelled)

    event = booked_event()
    await publisher.publish([event])

    assert seen_all == [event]
    assert seen_cancelled == []


@pytest.mark.asyncio
async def test_failing_handler_is_isolated():
    """One handler raising does not stop the others."""
    publisher = EventPublisher()
    delivered: list[DomainEvent] = []

    async def broken(event: DomainEvent) -> None:
        raise RuntimeError("handler failed")

    async def working(event: DomainEvent) -> None:
        delivered.append(event)

    publisher.subscribe(AppointmentBooked, broken)
    publisher.subscribe(AppointmentBooked, working)

    await publisher.publish([booked_event(), booked_event()])

    assert len(delivered) == 2


@pytest.mark.asyncio
async def test_default_publisher_logs_events():
    """The application publisher has the logging handler installed."""
    publisher = create_event_publisher()
    assert len(publisher.handlers_for(booked_event())) == 1
    await publisher.publish([booked_event()])


def test_event_name():
    """Events are named after their class."""
    assert booked_event().name == "AppointmentBooked"
