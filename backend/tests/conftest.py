"""
Pytest fixtures for test database, admission engine, and HTTP client.

Every test gets its own SQLite database file so that concurrent admission
transactions run on independent connections, the same way they do against
PostgreSQL. Redis is disabled: tier lookups and slot-freed facts go through
in-memory test doubles.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")

from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from rsvp_admission.api.dependencies import get_admission_engine
from rsvp_admission.db.base import Base
from rsvp_admission.db.session import get_db, get_session_factory
from rsvp_admission.main import app
from rsvp_admission.models.attendee import Attendee, AttendeeStatus
from rsvp_admission.models.event import Event
from rsvp_admission.services.admission_service import AdmissionEngine
from rsvp_admission.services.interfaces.slot_publisher import SlotFreed, SlotFreedPublisher
from rsvp_admission.services.interfaces.tier_lookup import TierLookup
from rsvp_admission.services.retry import ConflictRetryController
from rsvp_admission.services.waitlist import GAP_FILL, WaitlistManager

TIER_FACTORS = {"vip": 0.1, "premium": 0.3, "basic": 0.7, "free": 1.0}


class StaticTierLookup(TierLookup):
    """Tiers from a dict; subjects not listed get the default tier."""

    def __init__(self, tiers: Optional[dict] = None, default_tier: str = "free"):
        super().__init__(default_tier)
        self.tiers = tiers if tiers is not None else {}

    async def fetch_tier(self, subject_id: str) -> Optional[str]:
        return self.tiers.get(subject_id)


class RecordingPublisher(SlotFreedPublisher):
    def __init__(self):
        self.published: list[SlotFreed] = []

    async def send(self, fact: SlotFreed) -> None:
        self.published.append(fact)


@pytest_asyncio.fixture(scope="function")
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh schema in a per-test SQLite file."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'rsvp.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def tiers() -> dict:
    """Subject -> tier mapping used by the admission engine; tests may add to it."""
    return {}


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def make_engine(session_factory, tiers, publisher):
    def _make(mode: str = GAP_FILL, tier_lookup: Optional[TierLookup] = None, max_retries: int = 1):
        return AdmissionEngine(
            session_factory=session_factory,
            tier_lookup=tier_lookup or StaticTierLookup(tiers),
            publisher=publisher,
            waitlist=WaitlistManager(TIER_FACTORS, default_tier="free", mode=mode),
            retry=ConflictRetryController(max_retries=max_retries, max_delay_ms=5),
        )

    return _make


@pytest.fixture
def admission(make_engine) -> AdmissionEngine:
    return make_engine()


@pytest.fixture
def create_event(session_factory):
    async def _create(
        capacity: Optional[int] = 2,
        waitlist_enabled: bool = True,
        waitlist_limit: Optional[int] = None,
        title: str = "Community Picnic",
    ) -> Event:
        async with session_factory() as session:
            event = Event(
                title=title,
                capacity=capacity,
                confirmed_count=0,
                waitlist_enabled=waitlist_enabled,
                waitlist_limit=waitlist_limit,
                version=1,
            )
            session.add(event)
            await session.commit()
            return event

    return _create


@pytest.fixture
def snapshot(session_factory):
    """Committed state of an event: (event, attendees ordered by id)."""

    async def _snapshot(event_id: int) -> tuple[Event, list[Attendee]]:
        async with session_factory() as session:
            event = await session.get(Event, event_id)
            result = await session.execute(
                select(Attendee).where(Attendee.event_id == event_id).order_by(Attendee.id)
            )
            return event, list(result.scalars().all())

    return _snapshot


def _waitlist_of(attendees: list[Attendee]) -> list[tuple[str, int]]:
    waitlisted = [a for a in attendees if a.status == AttendeeStatus.WAITLISTED.value]
    return [(a.subject_id, a.waitlist_position) for a in sorted(waitlisted, key=lambda a: a.waitlist_position)]


@pytest.fixture
def waitlist_of():
    """(subject_id, position) of the waitlisted records, in position order."""
    return _waitlist_of


@pytest_asyncio.fixture(scope="function")
async def client(session_factory, admission) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client wired to the per-test database and admission engine."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_admission_engine] = lambda: admission

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
