"""In-process publication of appointment domain events."""

from collections import defaultdict
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import asdict

import structlog

from clinic_scheduling.domain.events import DomainEvent

logger = structlog.get_logger(__name__)

EventHandler = Callable[[DomainEvent], Awaitable[None]]


async def log_event(event: DomainEvent) -> None:
    """Default handler: write the event to the structured log."""
    logger.info("domain_event_published", event_name=event.name, **asdict(event))


class EventPublisher:
    """
    Dispatches domain events to registered handlers.

    Called only after the change that produced the events has committed.
    Delivery is best effort: a failing handler is logged and the remaining
    handlers still run.
    """

    def __init__(self) -> None:
        """Initialize publisher with no handlers."""
        self._handlers: dict[type[DomainEvent], list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: type[DomainEvent], handler: EventHandler) -> None:
        """Register a handler for an event type and its subclasses."""
        self._handlers[event_type].append(handler)

    def handlers_for(self, event: DomainEvent) -> list[EventHandler]:
        """Return handlers registered for the event's type or any of its bases."""
        handlers: list[EventHandler] = []
        for event_type in type(event).__mro__:
            handlers.extend(self._handlers.get(event_type, []))
        return handlers

    async def publish(self, events: Iterable[DomainEvent]) -> None:
        """Deliver each event to its handlers in order."""
        for event in events:
            for handler in self.handlers_for(event):
                try:
                    await handler(event)
                except Exception as e:
                    # The change is already committed; delivery failures must not undo it
                    logger.warning(
                        "domain_event_handler_failed",
                        event_name=event.name,
                        appointment_id=str(event.appointment_id),
                        handler=getattr(handler, "__name__", repr(handler)),
                        error=str(e),
                    )


def create_event_publisher() -> EventPublisher:
    """Build the application's publisher with the default handlers."""
    publisher = EventPublisher()
    publisher.subscribe(DomainEvent, log_event)
    return publisher
