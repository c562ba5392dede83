"""
Reference waitlist promoter.

This is the consumer side of the SlotFreed contract, shipped so a single-node
deployment (or an operator) can fill opened slots. It runs outside the
admission transaction that freed the slot: every promotion is its own
`apply_status_change(..., CONFIRMED)` call, so capacity is re-checked from a
fresh counter each time and a promotion can never overbook. Outbound
messaging to the promoted person is left to the notifier.

A party moves together: once the top candidate is confirmed, the other
waitlisted records sharing its `registered_by` (a registrant and their guests
or family) follow it ahead of the rest of the queue, as far as capacity and
`max_promotions` allow.
"""

from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import select

from rsvp_admission.core.exceptions import EventNotFound, TransactionConflict
from rsvp_admission.core.logging import get_logger
from rsvp_admission.models.attendee import Attendee, AttendeeStatus
from rsvp_admission.models.event import Event
from rsvp_admission.services.admission_service import AdmissionEngine
from rsvp_admission.services.capacity import CapacityEvaluator

logger = get_logger(__name__)


@dataclass
class PromotionResult:
    event_id: int
    promoted: list[int] = field(default_factory=list)
    stopped_reason: str = "no_capacity"


def _waitlisted(event_id: int):
    return (
        select(Attendee)
        .where(
            Attendee.event_id == event_id,
            Attendee.status == AttendeeStatus.WAITLISTED.value,
            Attendee.waitlist_position.is_not(None),
        )
        .order_by(Attendee.waitlist_position.asc(), Attendee.id.asc())
    )


async def _next_candidate(engine: AdmissionEngine, event_id: int) -> tuple[Event, Optional[Attendee]]:
    async with engine.session_factory() as session:
        event = (await session.execute(select(Event).where(Event.id == event_id))).scalar_one_or_none()
        if event is None:
            raise EventNotFound(event_id)
        result = await session.execute(_waitlisted(event_id).limit(1))
        return event, result.scalar_one_or_none()


async def _party_of(engine: AdmissionEngine, event_id: int, lead: Attendee) -> list[Attendee]:
    async with engine.session_factory() as session:
        result = await session.execute(
            _waitlisted(event_id).where(
                Attendee.registered_by == lead.registered_by,
                Attendee.id != lead.id,
            )
        )
        return [lead, *result.scalars().all()]


async def promote_waitlisted(
    engine: AdmissionEngine,
    event_id: int,
    max_promotions: Optional[int] = None,
) -> PromotionResult:
    """Confirm waitlisted parties in position order while capacity allows."""
    result = PromotionResult(event_id=event_id)

    def limit_reached() -> bool:
        return max_promotions is not None and len(result.promoted) >= max_promotions

    while not limit_reached():
        event, candidate = await _next_candidate(engine, event_id)
        if candidate is None:
            result.stopped_reason = "waitlist_empty"
            return result
        if not CapacityEvaluator(event.capacity, event.confirmed_count).can_confirm(1):
            result.stopped_reason = "no_capacity"
            return result

        for member in await _party_of(engine, event_id, candidate):
            if limit_reached():
                break
            try:
                outcome = await engine.apply_status_change(event_id, member.id, AttendeeStatus.CONFIRMED)
            except TransactionConflict:
                result.stopped_reason = "conflict"
                logger.warning("promotion_conflict", event_id=event_id, attendee_id=member.id)
                return result

            if outcome.status != AttendeeStatus.CONFIRMED:
                # Full, or someone else took the slot between our read and the transaction.
                result.stopped_reason = "no_capacity"
                return result

            result.promoted.append(member.id)
            logger.info(
                "waitlist_promoted",
                event_id=event_id,
                attendee_id=member.id,
                registered_by=member.registered_by,
                from_position=member.waitlist_position,
                confirmed_count=outcome.confirmed_count,
            )

    result.stopped_reason = "limit_reached"
    return result
