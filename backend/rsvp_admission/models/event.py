"""
Event model with the denormalized confirmed-attendee counter.

Key design decisions:
- `confirmed_count` is denormalized (avoids COUNT over attendees on every RSVP)
  and is only ever changed by admission transactions, by the same delta as the
  attendee status write that caused it
- `capacity` NULL means unlimited
- `version` is bumped by every admission transaction touching the event; a
  conditional UPDATE on it is the optimistic conflict check for both the
  counter and the waitlist positions
"""

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from rsvp_admission.db.base import Base, TimestampMixin


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    starts_at = Column(DateTime(timezone=True), nullable=True)
    capacity = Column(Integer, nullable=True)
    confirmed_count = Column(Integer, nullable=False, default=0)
    waitlist_enabled = Column(Boolean, nullable=False, default=False)
    waitlist_limit = Column(Integer, nullable=True)

    # Optimistic locking version counter
    version = Column(Integer, nullable=False, default=1)

    attendees = relationship(
        "Attendee",
        back_populates="event",
        lazy="raise",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("confirmed_count >= 0", name="check_confirmed_count_non_negative"),
        CheckConstraint("capacity IS NULL OR capacity >= 0", name="check_capacity_non_negative"),
        CheckConstraint("waitlist_limit IS NULL OR waitlist_limit >= 0", name="check_waitlist_limit_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title={self.title}, confirmed={self.confirmed_count}/{self.capacity})>"
