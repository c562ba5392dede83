"""
Attendee model: one record per person per event.

Key design decisions:
- Unique constraint on (event_id, subject_id): a person holds one record per
  event, every RSVP after the first is a status change on it
- `waitlist_position` is set only while status is waitlisted; positions are
  kept dense by the waitlist manager, not by a DB constraint, because a
  renumbering pass transiently reuses values inside one transaction
- `joined_waitlist_at` survives renumbering and re-joins
"""

import enum

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from rsvp_admission.db.base import Base, TimestampMixin


class AttendeeStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    DECLINED = "declined"
    WAITLISTED = "waitlisted"
    REMOVED = "removed"


class AttendeeKind(str, enum.Enum):
    PRIMARY = "primary"
    FAMILY_MEMBER = "family_member"
    GUEST = "guest"


class AgeGroup(str, enum.Enum):
    INFANT = "0-2"
    TODDLER = "3-5"
    CHILD = "6-10"
    TEEN = "11+"
    ADULT = "adult"


class Attendee(Base, TimestampMixin):
    __tablename__ = "attendees"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    subject_id = Column(String(100), nullable=False)
    registered_by = Column(String(100), nullable=False, index=True)
    kind = Column(String(20), nullable=False, default=AttendeeKind.PRIMARY.value)
    name = Column(String(255), nullable=True)
    age_group = Column(String(10), nullable=False, default=AgeGroup.ADULT.value)
    status = Column(String(20), nullable=False)
    waitlist_position = Column(Integer, nullable=True)
    joined_waitlist_at = Column(DateTime(timezone=True), nullable=True)
    promoted_at = Column(DateTime(timezone=True), nullable=True)

    event = relationship("Event", back_populates="attendees")

    __table_args__ = (
        UniqueConstraint("event_id", "subject_id", name="uq_event_subject_attendee"),
        Index("ix_attendees_event_status", "event_id", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<Attendee(id={self.id}, event={self.event_id}, subject={self.subject_id}, "
            f"status={self.status}, position={self.waitlist_position})>"
        )
