"""
RSVP endpoints. Every status write goes through the admission engine.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from rsvp_admission.api.dependencies import get_admission_engine
from rsvp_admission.db.session import get_db
from rsvp_admission.schemas.attendee import (
    AttendeeCountsResponse,
    AttendeeCreate,
    AttendeeResponse,
    AttendeeStatusUpdate,
    RemovalResponse,
    StatusChangeResponse,
)
from rsvp_admission.services.admission_service import AdmissionEngine, NewAttendee
from rsvp_admission.services.attendee_service import attendee_counts, list_attendees

router = APIRouter(prefix="/events/{event_id}/attendees", tags=["Attendees"])


@router.post("/", response_model=StatusChangeResponse)
async def rsvp_endpoint(
    event_id: int,
    rsvp: AttendeeCreate,
    engine: AdmissionEngine = Depends(get_admission_engine),
):
    """
    RSVP for a person. Creates the record on the first RSVP, otherwise
    changes the status of the person's existing record.

    A confirm on a full event lands on the waitlist when it is open
    (`redirected_to_waitlist` is true); otherwise the response is 409
    `capacity_exceeded`.
    """
    descriptor = NewAttendee(
        subject_id=rsvp.subject_id,
        registered_by=rsvp.registered_by,
        kind=rsvp.kind,
        name=rsvp.name,
        age_group=rsvp.age_group,
    )
    return await engine.apply_status_change(event_id, descriptor, rsvp.status)


@router.patch("/{attendee_id}", response_model=StatusChangeResponse)
async def change_status_endpoint(
    event_id: int,
    attendee_id: int,
    update: AttendeeStatusUpdate,
    engine: AdmissionEngine = Depends(get_admission_engine),
):
    """Change an attendee's status (confirm, decline, join/leave waitlist, remove)."""
    return await engine.apply_status_change(event_id, attendee_id, update.status)


@router.delete("/{attendee_id}", response_model=RemovalResponse)
async def remove_attendee_endpoint(
    event_id: int,
    attendee_id: int,
    engine: AdmissionEngine = Depends(get_admission_engine),
):
    """Administrative removal: deletes the record and closes any waitlist gap."""
    return await engine.remove_attendee(event_id, attendee_id)


@router.get("/", response_model=list[AttendeeResponse])
async def list_attendees_endpoint(
    event_id: int,
    db: AsyncSession = Depends(get_db),
):
    return await list_attendees(db, event_id)


@router.get("/counts", response_model=AttendeeCountsResponse, status_code=status.HTTP_200_OK)
async def attendee_counts_endpoint(
    event_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Totals per status and confirmed totals per age group."""
    return await attendee_counts(db, event_id)
