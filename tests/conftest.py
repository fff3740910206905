import os

# Test settings must be in place before the application modules are imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SCHEDULING_ISOLATION_LEVEL"] = "null"
os.environ["REDIS_HOST"] = "null"

from collections.abc import AsyncGenerator  # noqa: E402
from datetime import UTC, datetime, timedelta  # noqa: E402
from uuid import UUID, uuid4  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import insert  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool  # noqa: E402

from clinic_scheduling.database import get_db  # noqa: E402
from clinic_scheduling.dependencies import get_clock, get_event_publisher  # noqa: E402
from clinic_scheduling.domain.events import DomainEvent  # noqa: E402
from clinic_scheduling.main import app  # noqa: E402
from clinic_scheduling.models import doctors, metadata, patients  # noqa: E402
from clinic_scheduling.services.appointment_service import AppointmentService  # noqa: E402
from clinic_scheduling.services.event_publisher import EventPublisher  # noqa: E402

# Reference "now" for every test unless a test moves the clock
NOW = datetime(2025, 2, 20, 9, 0, tzinfo=UTC)


class FrozenClock:
    """Controllable clock handed to the service instead of the wall clock."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


class RecordingHandler:
    """Event handler that keeps every event it receives."""

    def __init__(self) -> None:
        self.events: list[DomainEvent] = []

    async def __call__(self, event: DomainEvent) -> None:
        self.events.append(event)


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """File-backed SQLite engine; each session gets its own connection."""
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'scheduling.db'}",
        poolclass=NullPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FrozenClock:
    """Clock frozen at NOW."""
    return FrozenClock(NOW)


@pytest.fixture
def recorder() -> RecordingHandler:
    """Collects published events."""
    return RecordingHandler()


@pytest.fixture
def publisher(recorder: RecordingHandler) -> EventPublisher:
    """Publisher that forwards every event to the recorder."""
    event_publisher = EventPublisher()
    event_publisher.subscribe(DomainEvent, recorder)
    return event_publisher


@pytest.fixture
def service(
    db_session: AsyncSession,
    publisher: EventPublisher,
    clock: FrozenClock,
) -> AppointmentService:
    """Appointment service wired to the test session, publisher and clock."""
    return AppointmentService(db_session, publisher=publisher, clock=clock, isolation_level=None)


async def _insert_reference(session: AsyncSession, table, **values) -> UUID:
    record_id = uuid4()
    await session.execute(insert(table).values(id=record_id, created_at=NOW, **values))
    await session.commit()
    return record_id


@pytest_asyncio.fixture
async def doctor_id(db_session: AsyncSession) -> UUID:
    """Create a test doctor."""
    return await _insert_reference(
        db_session, doctors, full_name="Dr. Test Doctor", specialty="Cardiology"
    )


@pytest_asyncio.fixture
async def other_doctor_id(db_session: AsyncSession) -> UUID:
    """Create a second test doctor."""
    return await _insert_reference(
        db_session, doctors, full_name="Dr. Second Doctor", specialty="Dermatology"
    )


@pytest_asyncio.fixture
async def patient_id(db_session: AsyncSession) -> UUID:
    """Create a test patient."""
    return await _insert_reference(
        db_session, patients, full_name="Test Patient", email="patient@example.com"
    )


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    clock: FrozenClock,
    publisher: EventPublisher,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_event_publisher] = lambda: publisher

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
