"""
Admission transaction engine.

CONCURRENCY STRATEGY: Optimistic Locking on the Event Row
=========================================================

Problem:
  Two people ask for the last seat at the same time. Both read
  confirmed_count = capacity - 1, both confirm. Result: overbooking.
  The same race corrupts waitlist positions (two joiners both pick
  position 4, or a leaver's renumbering overwrites a concurrent join).

Solution:
  Every status transition is one transaction that
    1. reads the event (capacity, confirmed_count, waitlist settings, version),
       the attendee and the event's waitlisted records
    2. decides the outcome from those fresh reads only
    3. UPDATE events SET confirmed_count = :new, version = version + 1
       WHERE id = :event_id AND version = :read_version
    4. writes the attendee changes and commits

  If step 3 affects zero rows another transaction committed a change to this
  event after our read, so everything we decided may be stale: we roll back
  and raise TransactionConflict, which the retry controller retries once.
  Because *every* attendee write for an event bumps the version, the counter
  and the waitlist positions are both protected by the same check, and
  admission effects per event are serializable without explicit row locks.

  The CHECK constraint (confirmed_count >= 0) and the clamp below are the
  last safety net for data that drifted outside this engine.
"""

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rsvp_admission.core.exceptions import (
    AttendeeNotFound,
    CapacityExceeded,
    EventNotFound,
    TransactionConflict,
    WaitlistUnavailable,
)
from rsvp_admission.core.logging import admission_context, get_logger
from rsvp_admission.core.metrics import (
    admission_latency,
    confirmed_count_clamps,
    record_admission,
    record_renumber,
    waitlist_redirects,
)
from rsvp_admission.models.attendee import AgeGroup, Attendee, AttendeeKind, AttendeeStatus
from rsvp_admission.models.event import Event
from rsvp_admission.services.capacity import CapacityEvaluator
from rsvp_admission.services.interfaces.slot_publisher import (
    CAPACITY_RELEASED,
    WAITLIST_LEFT,
    SlotFreed,
    SlotFreedPublisher,
)
from rsvp_admission.services.interfaces.tier_lookup import TierLookup
from rsvp_admission.services.retry import ConflictRetryController, retry_on_conflict
from rsvp_admission.services.waitlist import WaitlistManager, load_waitlist

logger = get_logger(__name__)


@dataclass
class NewAttendee:
    """Who a first RSVP is for. `registered_by` defaults to the subject itself."""

    subject_id: str
    registered_by: Optional[str] = None
    kind: AttendeeKind = AttendeeKind.PRIMARY
    name: Optional[str] = None
    age_group: AgeGroup = AgeGroup.ADULT


@dataclass
class StatusChangeOutcome:
    event_id: int
    attendee_id: int
    previous_status: Optional[AttendeeStatus]
    requested_status: AttendeeStatus
    status: AttendeeStatus
    redirected_to_waitlist: bool
    waitlist_position: Optional[int]
    confirmed_count: int
    capacity: Optional[int]
    created: bool = False
    slot_freed: bool = False
    freed_position: Optional[int] = None


@dataclass
class RemovalOutcome:
    event_id: int
    attendee_id: int
    previous_status: AttendeeStatus
    confirmed_count: int
    slot_freed: bool
    freed_position: Optional[int] = None


@dataclass
class RecalculationOutcome:
    event_id: int
    recalculated_count: int


@dataclass
class ReconcileOutcome:
    event_id: int
    previous_count: int
    confirmed_count: int


AttendeeTarget = Union[int, NewAttendee]


def confirmed_delta(previous: Optional[AttendeeStatus], target: AttendeeStatus) -> int:
    was_confirmed = previous == AttendeeStatus.CONFIRMED
    is_confirmed = target == AttendeeStatus.CONFIRMED
    if is_confirmed and not was_confirmed:
        return 1
    if was_confirmed and not is_confirmed:
        return -1
    return 0


def waitlist_refusal(event: Event, waitlisted_count: int) -> Optional[str]:
    """Why the event's waitlist cannot take one more entry, or None if it can."""
    if not event.waitlist_enabled:
        return "waitlist_disabled"
    if event.waitlist_limit is not None and waitlisted_count >= event.waitlist_limit:
        return "waitlist_full"
    return None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AdmissionEngine:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        tier_lookup: TierLookup,
        publisher: SlotFreedPublisher,
        waitlist: WaitlistManager,
        retry: ConflictRetryController,
    ):
        self.session_factory = session_factory
        self.tier_lookup = tier_lookup
        self.publisher = publisher
        self.waitlist = waitlist
        self.retry = retry

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def apply_status_change(
        self,
        event_id: int,
        target: AttendeeTarget,
        requested_status: AttendeeStatus,
    ) -> StatusChangeOutcome:
        """
        Move one attendee (existing id, or a NewAttendee for a first RSVP) to
        `requested_status` in a single atomic unit.

        A confirm request on a full event is redirected to the waitlist when
        the waitlist can take it; otherwise CapacityExceeded is raised and
        nothing is written.
        """
        requested_status = AttendeeStatus(requested_status)
        attendee_ref = target if isinstance(target, int) else None
        with admission_context(event_id=event_id, attendee_id=attendee_ref, requested_status=requested_status.value):
            start = time.perf_counter()
            try:
                outcome = await self._apply_status_change(event_id, target, requested_status)
            except CapacityExceeded:
                record_admission("rejected")
                raise
            finally:
                admission_latency.observe(time.perf_counter() - start)

            record_admission(outcome.status.value)
            if outcome.slot_freed:
                await self._publish_slot_freed(event_id, outcome.previous_status, outcome.attendee_id, outcome.freed_position)
        return outcome

    async def remove_attendee(self, event_id: int, attendee_id: int) -> RemovalOutcome:
        """Administrative removal: physically delete the record."""
        with admission_context(event_id=event_id, attendee_id=attendee_id, operation="remove"):
            outcome = await self._remove_attendee(event_id, attendee_id)
            record_admission("removed")
            if outcome.slot_freed:
                await self._publish_slot_freed(event_id, outcome.previous_status, attendee_id, outcome.freed_position)
        return outcome

    async def _publish_slot_freed(
        self,
        event_id: int,
        previous: Optional[AttendeeStatus],
        attendee_id: int,
        freed_position: Optional[int],
    ) -> None:
        # Runs after commit; the promoter acts in its own transaction.
        reason = WAITLIST_LEFT if previous == AttendeeStatus.WAITLISTED else CAPACITY_RELEASED
        await self.publisher.publish(
            SlotFreed(
                event_id=event_id,
                reason=reason,
                attendee_id=attendee_id,
                freed_position=freed_position,
            )
        )

    @retry_on_conflict("recalculate_waitlist_positions")
    async def recalculate_waitlist_positions(self, event_id: int) -> RecalculationOutcome:
        """Renumber the waitlist 1..k. Idempotent; safe to run after data drift."""
        async with self.session_factory() as session:
            async with session.begin():
                event = await self._load_event(session, event_id)
                waitlisted = await load_waitlist(session, event_id)
                await self._guarded_event_update(session, event, event.confirmed_count)
                count = self.waitlist.renumber(waitlisted)

        record_renumber("recalculate")
        logger.info("waitlist_recalculated", event_id=event_id, recalculated_count=count)
        return RecalculationOutcome(event_id=event_id, recalculated_count=count)

    @retry_on_conflict("reconcile_confirmed_count")
    async def reconcile_confirmed_count(self, event_id: int) -> ReconcileOutcome:
        """Re-derive confirmed_count from the attendee records."""
        async with self.session_factory() as session:
            async with session.begin():
                event = await self._load_event(session, event_id)
                actual = (
                    await session.execute(
                        select(func.count())
                        .select_from(Attendee)
                        .where(
                            Attendee.event_id == event_id,
                            Attendee.status == AttendeeStatus.CONFIRMED.value,
                        )
                    )
                ).scalar_one()
                previous = event.confirmed_count
                await self._guarded_event_update(session, event, actual)

        if previous != actual:
            logger.warning(
                "confirmed_count_reconciled",
                event_id=event_id,
                previous=previous,
                confirmed_count=actual,
            )
        return ReconcileOutcome(event_id=event_id, previous_count=previous, confirmed_count=actual)

    # ------------------------------------------------------------------
    # Transaction bodies (one call = one attempt = one transaction)
    # ------------------------------------------------------------------

    @retry_on_conflict("apply_status_change")
    async def _apply_status_change(
        self,
        event_id: int,
        target: AttendeeTarget,
        requested: AttendeeStatus,
    ) -> StatusChangeOutcome:
        async with self.session_factory() as session:
            async with session.begin():
                event = await self._load_event(session, event_id)
                attendee = await self._load_attendee(session, event_id, target)
                waitlisted = await load_waitlist(session, event_id)

                previous = AttendeeStatus(attendee.status) if attendee is not None else None
                others = [a for a in waitlisted if attendee is None or a.id != attendee.id]

                effective = requested
                redirected = False
                if requested == AttendeeStatus.CONFIRMED and previous != AttendeeStatus.CONFIRMED:
                    evaluator = CapacityEvaluator(event.capacity, event.confirmed_count)
                    if not evaluator.can_confirm(1):
                        if previous == AttendeeStatus.WAITLISTED:
                            # Still full: keep the existing place in line.
                            effective = AttendeeStatus.WAITLISTED
                            redirected = True
                        else:
                            refusal = waitlist_refusal(event, len(others))
                            if refusal is not None:
                                logger.info(
                                    "admission_rejected",
                                    event_id=event_id,
                                    confirmed_count=event.confirmed_count,
                                    capacity=event.capacity,
                                    reason=refusal,
                                )
                                raise CapacityExceeded(
                                    event_id=event_id,
                                    current_count=event.confirmed_count,
                                    capacity=event.capacity,
                                    waitlist_enabled=bool(event.waitlist_enabled),
                                    can_waitlist=False,
                                    reason=refusal,
                                )
                            effective = AttendeeStatus.WAITLISTED
                            redirected = True
                            waitlist_redirects.inc()
                elif requested == AttendeeStatus.WAITLISTED and previous != AttendeeStatus.WAITLISTED:
                    refusal = waitlist_refusal(event, len(others))
                    if refusal is not None:
                        raise WaitlistUnavailable(
                            event_id=event_id,
                            reason=refusal,
                            waitlisted_count=len(others),
                            waitlist_limit=event.waitlist_limit,
                        )

                if attendee is not None and previous == effective:
                    # Nothing to write; report the state we just read.
                    return self._outcome(event, attendee, previous, requested, redirected, event.confirmed_count)

                delta = confirmed_delta(previous, effective)
                new_count = self._apply_delta(event, delta)

                joining = effective == AttendeeStatus.WAITLISTED and previous != AttendeeStatus.WAITLISTED
                leaving = previous == AttendeeStatus.WAITLISTED and effective != AttendeeStatus.WAITLISTED

                tier = None
                if joining:
                    tier = await self.tier_lookup.get_priority_tier(self._tier_subject(attendee, target))

                # Version guard before the first attendee write.
                await self._guarded_event_update(session, event, new_count)

                placement = self.waitlist.assign_position(others, tier) if joining else None

                created = attendee is None
                if created:
                    attendee = self._new_record(event_id, target, effective)
                    session.add(attendee)
                else:
                    attendee.status = effective.value

                now = _utcnow()
                freed_position = None
                if joining:
                    attendee.waitlist_position = placement.position
                    if attendee.joined_waitlist_at is None:
                        attendee.joined_waitlist_at = now
                    logger.info(
                        "waitlist_joined",
                        event_id=event_id,
                        subject_id=attendee.subject_id,
                        tier=tier,
                        proposed_position=placement.proposed,
                        position=placement.position,
                        shifted=len(placement.shifted),
                    )
                if leaving:
                    freed_position = attendee.waitlist_position
                    attendee.waitlist_position = None
                    remaining = self.waitlist.renumber(others)
                    record_renumber("leave")
                    logger.info(
                        "waitlist_renumbered",
                        event_id=event_id,
                        freed_position=freed_position,
                        remaining=remaining,
                    )
                if effective == AttendeeStatus.CONFIRMED and previous == AttendeeStatus.WAITLISTED:
                    attendee.promoted_at = now

        outcome = self._outcome(event, attendee, previous, requested, redirected, new_count, created=created)
        outcome.slot_freed = leaving or delta < 0
        outcome.freed_position = freed_position
        logger.info(
            "admission_committed",
            event_id=event_id,
            attendee_id=attendee.id,
            previous_status=previous.value if previous else None,
            requested_status=requested.value,
            status=effective.value,
            redirected=redirected,
            waitlist_position=outcome.waitlist_position,
            confirmed_count=new_count,
            capacity=event.capacity,
        )
        return outcome

    @retry_on_conflict("remove_attendee")
    async def _remove_attendee(self, event_id: int, attendee_id: int) -> RemovalOutcome:
        async with self.session_factory() as session:
            async with session.begin():
                event = await self._load_event(session, event_id)
                attendee = await self._load_attendee(session, event_id, attendee_id)
                waitlisted = await load_waitlist(session, event_id)

                previous = AttendeeStatus(attendee.status)
                new_count = self._apply_delta(event, confirmed_delta(previous, AttendeeStatus.REMOVED))

                await self._guarded_event_update(session, event, new_count)
                await session.delete(attendee)

                was_waitlisted = previous == AttendeeStatus.WAITLISTED
                freed_position = attendee.waitlist_position if was_waitlisted else None
                if was_waitlisted:
                    self.waitlist.renumber([a for a in waitlisted if a.id != attendee_id])
                    record_renumber("remove")

        logger.info(
            "attendee_removed",
            event_id=event_id,
            attendee_id=attendee_id,
            previous_status=previous.value,
            confirmed_count=new_count,
        )
        return RemovalOutcome(
            event_id=event_id,
            attendee_id=attendee_id,
            previous_status=previous,
            confirmed_count=new_count,
            slot_freed=was_waitlisted or previous == AttendeeStatus.CONFIRMED,
            freed_position=freed_position,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _load_event(self, session: AsyncSession, event_id: int) -> Event:
        event = (await session.execute(select(Event).where(Event.id == event_id))).scalar_one_or_none()
        if event is None:
            raise EventNotFound(event_id)
        return event

    async def _load_attendee(
        self,
        session: AsyncSession,
        event_id: int,
        target: AttendeeTarget,
    ) -> Optional[Attendee]:
        """Existing record for the target; None only for a first RSVP."""
        if isinstance(target, NewAttendee):
            result = await session.execute(
                select(Attendee).where(
                    Attendee.event_id == event_id,
                    Attendee.subject_id == target.subject_id,
                )
            )
            return result.scalar_one_or_none()

        result = await session.execute(
            select(Attendee).where(Attendee.event_id == event_id, Attendee.id == target)
        )
        attendee = result.scalar_one_or_none()
        if attendee is None:
            raise AttendeeNotFound(event_id, target)
        return attendee

    async def _guarded_event_update(self, session: AsyncSession, event: Event, new_count: int) -> None:
        """Write the counter and bump the version, or raise if someone else did first."""
        read_version = event.version
        result = await session.execute(
            update(Event)
            .where(Event.id == event.id, Event.version == read_version)
            .values(confirmed_count=new_count, version=read_version + 1, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            logger.info("admission_version_conflict", event_id=event.id, read_version=read_version)
            raise TransactionConflict(event.id)

    def _apply_delta(self, event: Event, delta: int) -> int:
        new_count = event.confirmed_count + delta
        if new_count < 0:
            confirmed_count_clamps.inc()
            logger.warning(
                "confirmed_count_clamped",
                event_id=event.id,
                confirmed_count=event.confirmed_count,
                delta=delta,
            )
            new_count = 0
        return new_count

    @staticmethod
    def _tier_subject(attendee: Optional[Attendee], target: AttendeeTarget) -> str:
        # Family members and guests queue with the tier of whoever registered them.
        if attendee is not None:
            return attendee.registered_by
        return target.registered_by or target.subject_id

    @staticmethod
    def _new_record(event_id: int, target: NewAttendee, status: AttendeeStatus) -> Attendee:
        return Attendee(
            event_id=event_id,
            subject_id=target.subject_id,
            registered_by=target.registered_by or target.subject_id,
            kind=AttendeeKind(target.kind).value,
            name=target.name,
            age_group=AgeGroup(target.age_group).value,
            status=status.value,
        )

    @staticmethod
    def _outcome(
        event: Event,
        attendee: Attendee,
        previous: Optional[AttendeeStatus],
        requested: AttendeeStatus,
        redirected: bool,
        confirmed_count: int,
        created: bool = False,
    ) -> StatusChangeOutcome:
        return StatusChangeOutcome(
            event_id=event.id,
            attendee_id=attendee.id,
            previous_status=previous,
            requested_status=requested,
            status=AttendeeStatus(attendee.status),
            redirected_to_waitlist=redirected,
            waitlist_position=attendee.waitlist_position,
            confirmed_count=confirmed_count,
            capacity=event.capacity,
            created=created,
        )
