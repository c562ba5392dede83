"""
Admission error taxonomy.

Every failure the admission core can surface is an AdmissionError subclass.
The HTTP layer maps them to status codes via `status_code` and renders
`to_dict()` as the response body, so callers can tell "over capacity" from
"please retry" from "does not exist".
"""

from typing import Any, Optional

from fastapi import status


class AdmissionError(Exception):
    code = "admission_error"
    status_code = status.HTTP_400_BAD_REQUEST
    retryable = False

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "retryable": self.retryable,
            **self.context,
        }


class CapacityExceeded(AdmissionError):
    """Business rejection: the event is full and the waitlist cannot take the request."""

    code = "capacity_exceeded"
    status_code = status.HTTP_409_CONFLICT

    def __init__(
        self,
        event_id: int,
        current_count: int,
        capacity: Optional[int],
        waitlist_enabled: bool,
        can_waitlist: bool,
        reason: str = "capacity_exceeded",
    ):
        super().__init__(
            f"Event {event_id} is at capacity ({current_count}/{capacity})",
            event_id=event_id,
            current_count=current_count,
            capacity=capacity,
            waitlist_enabled=waitlist_enabled,
            can_waitlist=can_waitlist,
            reason=reason,
        )
        self.event_id = event_id
        self.current_count = current_count
        self.capacity = capacity
        self.waitlist_enabled = waitlist_enabled
        self.can_waitlist = can_waitlist
        self.reason = reason


class WaitlistUnavailable(AdmissionError):
    """An explicit waitlist request on an event whose waitlist is disabled or full."""

    code = "waitlist_unavailable"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, event_id: int, reason: str, waitlisted_count: int, waitlist_limit: Optional[int]):
        super().__init__(
            f"Waitlist for event {event_id} is not accepting entries",
            event_id=event_id,
            reason=reason,
            waitlisted_count=waitlisted_count,
            waitlist_limit=waitlist_limit,
        )
        self.reason = reason


class TransactionConflict(AdmissionError):
    """A concurrent writer changed the event between our read and our commit."""

    code = "transaction_conflict"
    status_code = status.HTTP_409_CONFLICT
    retryable = True

    def __init__(self, event_id: int, attempts: int = 1):
        super().__init__(
            "Too many concurrent changes to this event. Please try again.",
            event_id=event_id,
            attempts=attempts,
        )
        self.event_id = event_id
        self.attempts = attempts


class EventNotFound(AdmissionError):
    code = "event_not_found"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, event_id: int):
        super().__init__(f"Event {event_id} not found", event_id=event_id)
        self.event_id = event_id


class AttendeeNotFound(AdmissionError):
    code = "attendee_not_found"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, event_id: int, attendee_id: int):
        super().__init__(
            f"Attendee {attendee_id} not found for event {event_id}",
            event_id=event_id,
            attendee_id=attendee_id,
        )
        self.event_id = event_id
        self.attendee_id = attendee_id


class StoreUnavailable(AdmissionError):
    """Backing store failed for a reason other than a write conflict."""

    code = "store_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    retryable = True

    def __init__(self, detail: str):
        super().__init__("Service temporarily unavailable. Please try again.", detail=detail)
