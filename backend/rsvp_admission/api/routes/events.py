"""
Event endpoints. Events are read fresh on every request (admission needs
real-time counters), so nothing here is cached.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from rsvp_admission.db.session import get_db
from rsvp_admission.schemas.event import EventCreate, EventResponse
from rsvp_admission.services.event_service import create_event, get_event

router = APIRouter(prefix="/events", tags=["Events"])


@router.post("/", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    event_data: EventCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a new event with its capacity and waitlist settings."""
    event = await create_event(db, event_data)
    return event


@router.get("/{event_id}", response_model=EventResponse)
async def get_event_endpoint(
    event_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Get a single event by ID, including the live confirmed count."""
    event = await get_event(db, event_id)
    return event
