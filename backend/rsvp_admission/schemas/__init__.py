from rsvp_admission.schemas.event import EventCreate, EventResponse
from rsvp_admission.schemas.attendee import (
    AttendeeCreate, AttendeeStatusUpdate, AttendeeResponse, StatusChangeResponse,
    RemovalResponse, AttendeeCountsResponse, RecalculationResponse, ReconcileResponse,
    PromotionResponse,
)

__all__ = [
    "EventCreate", "EventResponse",
    "AttendeeCreate", "AttendeeStatusUpdate", "AttendeeResponse", "StatusChangeResponse",
    "RemovalResponse", "AttendeeCountsResponse", "RecalculationResponse", "ReconcileResponse",
    "PromotionResponse",
]
