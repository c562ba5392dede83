"""
Tests for waitlist position assignment and renumbering (no database).
"""

from datetime import datetime, timedelta, timezone

import pytest

from rsvp_admission.models.attendee import Attendee, AttendeeStatus
from rsvp_admission.services.waitlist import (
    GAP_FILL,
    INSERT,
    WaitlistManager,
    first_free_position,
    queue_order,
)

FACTORS = {"vip": 0.1, "premium": 0.3, "basic": 0.7, "free": 1.0}


def make_waitlisted(*positions, start_id=1):
    return [
        Attendee(
            id=start_id + i,
            subject_id=f"s{start_id + i}",
            registered_by=f"s{start_id + i}",
            status=AttendeeStatus.WAITLISTED.value,
            waitlist_position=p,
        )
        for i, p in enumerate(positions)
    ]


def test_first_free_position():
    assert first_free_position([]) == 1
    assert first_free_position([1, 2, 3]) == 4
    assert first_free_position([1, 3, 4]) == 2
    assert first_free_position([None, 2]) == 1


def test_proposed_position_is_monotonic_in_priority():
    """Higher tier never proposes a later position than a lower tier."""
    manager = WaitlistManager(FACTORS)
    for p0 in range(1, 40):
        proposals = [manager.proposed_position(p0, tier) for tier in ("vip", "premium", "basic", "free")]
        assert proposals == sorted(proposals)
        assert all(p >= 1 for p in proposals)
        assert proposals[-1] == p0


def test_unknown_tier_uses_default_factor():
    manager = WaitlistManager(FACTORS, default_tier="free")
    assert manager.proposed_position(11, "platinum") == 11
    assert manager.proposed_position(11, None) == 11


def test_empty_waitlist_starts_at_one():
    manager = WaitlistManager(FACTORS)
    assert manager.assign_position([], "free").position == 1
    assert manager.assign_position([], "vip").position == 1


def test_gap_fill_appends_to_dense_waitlist():
    """No gaps: every tier lands at the end, nobody is displaced."""
    manager = WaitlistManager(FACTORS, mode=GAP_FILL)
    waitlisted = make_waitlisted(1, 2, 3, 4, 5, 6, 7, 8, 9, 10)

    placement = manager.assign_position(waitlisted, "vip")

    assert placement.proposed == 1
    assert placement.position == 11
    assert placement.shifted == []
    assert [a.waitlist_position for a in waitlisted] == list(range(1, 11))


def test_gap_fill_places_every_tier_in_first_gap():
    manager = WaitlistManager(FACTORS, mode=GAP_FILL)
    waitlisted = make_waitlisted(2, 3, 5)

    assert manager.assign_position(waitlisted, "vip").position == 1
    assert manager.assign_position(waitlisted, "free").position == 1


def test_gap_fill_advances_past_occupied():
    manager = WaitlistManager(FACTORS, mode=GAP_FILL)
    waitlisted = make_waitlisted(1, 3, 4)

    # p0 = 2; vip proposes 1, which is taken
    placement = manager.assign_position(waitlisted, "vip")
    assert placement.proposed == 1
    assert placement.position == 2


def test_insert_mode_shifts_later_entries():
    manager = WaitlistManager(FACTORS, mode=INSERT)
    waitlisted = make_waitlisted(1, 2, 3, 4)

    # p0 = 5; premium proposes floor(1.5) = 1
    placement = manager.assign_position(waitlisted, "premium")

    assert placement.position == 1
    assert [a.waitlist_position for a in waitlisted] == [2, 3, 4, 5]
    assert len(placement.shifted) == 4


def test_insert_mode_keeps_earlier_entries():
    manager = WaitlistManager(FACTORS, mode=INSERT)
    waitlisted = make_waitlisted(1, 2, 3, 4, 5)

    # p0 = 6; basic proposes floor(4.2) = 4
    placement = manager.assign_position(waitlisted, "basic")

    assert placement.position == 4
    assert [a.waitlist_position for a in waitlisted] == [1, 2, 3, 5, 6]
    assert [a.id for a in placement.shifted] == [4, 5]


def test_insert_mode_free_tier_appends():
    manager = WaitlistManager(FACTORS, mode=INSERT)
    waitlisted = make_waitlisted(1, 2, 3)

    placement = manager.assign_position(waitlisted, "free")

    assert placement.position == 4
    assert placement.shifted == []


def test_unknown_mode_rejected():
    with pytest.raises(ValueError):
        WaitlistManager(FACTORS, mode="lottery")


def test_renumber_closes_gaps_in_current_order():
    waitlisted = make_waitlisted(3, 1, 7)

    k = WaitlistManager.renumber(waitlisted)

    assert k == 3
    by_id = {a.id: a.waitlist_position for a in waitlisted}
    assert by_id == {2: 1, 1: 2, 3: 3}


def test_renumber_is_idempotent():
    waitlisted = make_waitlisted(4, 9, 2, 6)

    WaitlistManager.renumber(waitlisted)
    first = [a.waitlist_position for a in waitlisted]
    WaitlistManager.renumber(waitlisted)

    assert [a.waitlist_position for a in waitlisted] == first
    assert sorted(first) == [1, 2, 3, 4]


def test_unpositioned_records_go_last_by_join_time():
    now = datetime.now(timezone.utc)
    waitlisted = make_waitlisted(None, 2, None)
    waitlisted[0].joined_waitlist_at = now
    # SQLite returns naive datetimes; ordering must still work
    waitlisted[2].joined_waitlist_at = (now - timedelta(minutes=5)).replace(tzinfo=None)

    ordered = sorted(waitlisted, key=queue_order)

    assert [a.id for a in ordered] == [2, 3, 1]
