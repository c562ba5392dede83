"""
Waitlist position manager.

WAITLIST ORDERING
=================

Invariant: for one event, the positions of waitlisted attendees are exactly
{1, 2, ..., k}. Every function here runs inside the caller's admission
transaction and only mutates attendee objects loaded by that transaction;
the event version guard in the admission engine is what makes the result
race-free.

Join:
  1. p0 = lowest unused positive position (first gap, 1 when empty)
  2. proposed = max(1, floor(p0 * tier_factor))
  3. gap_fill mode: advance `proposed` past occupied positions -> unique
     insert mode: put the joiner at `proposed` and shift the entries at or
     behind it down by one, keeping their relative order

  Every position below p0 is occupied, so in gap_fill mode any proposal
  advances back to p0 and the tier never changes placement. Nobody already
  queued is pushed back. Tiers only move joiners forward in insert mode.

Leave:
  Clear the leaver's position and renumber the rest 1..k by their *current*
  position. Priority is never re-applied to people already in line.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rsvp_admission.models.attendee import Attendee, AttendeeStatus

GAP_FILL = "gap_fill"
INSERT = "insert"


@dataclass
class Placement:
    position: int
    proposed: int
    shifted: list[Attendee] = field(default_factory=list)


def first_free_position(positions: Iterable[Optional[int]]) -> int:
    taken = {p for p in positions if p is not None and p >= 1}
    candidate = 1
    while candidate in taken:
        candidate += 1
    return candidate


def _timestamp_key(value: Optional[datetime]) -> datetime:
    # SQLite hands back naive datetimes, PostgreSQL aware ones; all are UTC.
    if value is None:
        return datetime.max
    return value.replace(tzinfo=None)


def queue_order(attendee: Attendee) -> tuple:
    """Sort key: current position first, unpositioned records last by join time."""
    position = attendee.waitlist_position
    return (
        position is None,
        position if position is not None else 0,
        _timestamp_key(attendee.joined_waitlist_at),
        _timestamp_key(attendee.created_at),
        attendee.id or 0,
    )


class WaitlistManager:
    def __init__(
        self,
        tier_factors: Mapping[str, float],
        default_tier: str = "free",
        mode: str = GAP_FILL,
    ):
        if mode not in (GAP_FILL, INSERT):
            raise ValueError(f"Unknown waitlist priority mode: {mode}")
        self.tier_factors = dict(tier_factors)
        self.default_tier = default_tier
        self.mode = mode

    def factor_for(self, tier: Optional[str]) -> float:
        if tier in self.tier_factors:
            return self.tier_factors[tier]
        return self.tier_factors.get(self.default_tier, 1.0)

    def proposed_position(self, first_free: int, tier: Optional[str]) -> int:
        return max(1, math.floor(first_free * self.factor_for(tier)))

    def assign_position(self, waitlisted: list[Attendee], tier: Optional[str]) -> Placement:
        """
        Pick the position for a new joiner.

        `waitlisted` holds the other waitlisted records of the event, loaded in
        the enclosing transaction. In insert mode the shifted records are
        mutated in place and returned so the caller can log them.
        """
        positions = [a.waitlist_position for a in waitlisted]
        p0 = first_free_position(positions)
        proposed = self.proposed_position(p0, tier)

        if self.mode == GAP_FILL:
            occupied = {p for p in positions if p is not None}
            position = proposed
            while position in occupied:
                position += 1
            return Placement(position=position, proposed=proposed)

        ordered = sorted(waitlisted, key=queue_order)
        index = min(proposed, len(ordered) + 1) - 1
        shifted = []
        for new_position, attendee in enumerate(ordered, start=1):
            if new_position > index:
                new_position += 1
            if attendee.waitlist_position != new_position:
                attendee.waitlist_position = new_position
                shifted.append(attendee)
        return Placement(position=index + 1, proposed=proposed, shifted=shifted)

    @staticmethod
    def renumber(waitlisted: list[Attendee]) -> int:
        """Reassign positions 1..k in current order. Returns k."""
        ordered = sorted(waitlisted, key=queue_order)
        for position, attendee in enumerate(ordered, start=1):
            if attendee.waitlist_position != position:
                attendee.waitlist_position = position
        return len(ordered)


async def load_waitlist(session: AsyncSession, event_id: int) -> list[Attendee]:
    """All waitlisted records of an event, read in the caller's transaction."""
    result = await session.execute(
        select(Attendee)
        .where(
            Attendee.event_id == event_id,
            Attendee.status == AttendeeStatus.WAITLISTED.value,
        )
        .order_by(Attendee.waitlist_position.asc(), Attendee.id.asc())
    )
    return list(result.scalars().all())
