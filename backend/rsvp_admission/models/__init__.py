from rsvp_admission.models.event import Event
from rsvp_admission.models.attendee import Attendee, AttendeeStatus, AttendeeKind, AgeGroup
from rsvp_admission.models.member import Member

__all__ = ["Event", "Attendee", "AttendeeStatus", "AttendeeKind", "AgeGroup", "Member"]
