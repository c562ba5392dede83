"""
Read-side attendee queries: listings and reporting counts.
"""

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from rsvp_admission.models.attendee import AgeGroup, Attendee, AttendeeStatus
from rsvp_admission.services.event_service import get_event


async def list_attendees(db: AsyncSession, event_id: int) -> list[Attendee]:
    """
    All attendees of an event: confirmed first, then the waitlist in
    position order, then everyone else by creation time.
    """
    await get_event(db, event_id)

    status_rank = case(
        (Attendee.status == AttendeeStatus.CONFIRMED.value, 0),
        (Attendee.status == AttendeeStatus.WAITLISTED.value, 1),
        else_=2,
    )
    result = await db.execute(
        select(Attendee)
        .where(Attendee.event_id == event_id)
        .order_by(status_rank, Attendee.waitlist_position.asc(), Attendee.created_at.asc(), Attendee.id.asc())
    )
    return list(result.scalars().all())


async def attendee_counts(db: AsyncSession, event_id: int) -> dict:
    """Per-status totals plus confirmed totals by age group."""
    event = await get_event(db, event_id)

    by_status = {s.value: 0 for s in AttendeeStatus}
    rows = await db.execute(
        select(Attendee.status, func.count())
        .where(Attendee.event_id == event_id)
        .group_by(Attendee.status)
    )
    for status, count in rows.all():
        by_status[status] = count

    by_age_group = {g.value: 0 for g in AgeGroup}
    rows = await db.execute(
        select(Attendee.age_group, func.count())
        .where(
            Attendee.event_id == event_id,
            Attendee.status == AttendeeStatus.CONFIRMED.value,
        )
        .group_by(Attendee.age_group)
    )
    for age_group, count in rows.all():
        by_age_group[age_group] = count

    return {
        "event_id": event_id,
        "capacity": event.capacity,
        "confirmed_count": event.confirmed_count,
        "by_status": by_status,
        "confirmed_by_age_group": by_age_group,
    }
