"""
Event service handling the event records admission decisions read.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rsvp_admission.core.exceptions import EventNotFound
from rsvp_admission.core.logging import get_logger
from rsvp_admission.models.event import Event
from rsvp_admission.schemas.event import EventCreate

logger = get_logger(__name__)


async def create_event(db: AsyncSession, event_data: EventCreate) -> Event:
    """Create a new event with nobody confirmed yet."""
    event = Event(
        title=event_data.title,
        starts_at=event_data.starts_at,
        capacity=event_data.capacity,
        confirmed_count=0,
        waitlist_enabled=event_data.waitlist_enabled,
        waitlist_limit=event_data.waitlist_limit,
        version=1,
    )
    db.add(event)
    await db.flush()
    await db.refresh(event)

    logger.info(
        "event_created",
        event_id=event.id,
        title=event.title,
        capacity=event.capacity,
        waitlist_enabled=event.waitlist_enabled,
    )
    return event


async def get_event(db: AsyncSession, event_id: int) -> Event:
    """Get a single event by ID."""
    result = await db.execute(select(Event).where(Event.id == event_id))
    event = result.scalar_one_or_none()

    if not event:
        raise EventNotFound(event_id)
    return event
