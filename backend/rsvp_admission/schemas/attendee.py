"""
Pydantic schemas for RSVP / attendee request and response validation.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from rsvp_admission.models.attendee import AgeGroup, AttendeeKind, AttendeeStatus


class AttendeeCreate(BaseModel):
    subject_id: str = Field(..., min_length=1, max_length=100)
    registered_by: Optional[str] = Field(None, min_length=1, max_length=100)
    kind: AttendeeKind = AttendeeKind.PRIMARY
    name: Optional[str] = Field(None, max_length=255)
    age_group: AgeGroup = AgeGroup.ADULT
    status: AttendeeStatus = AttendeeStatus.CONFIRMED


class AttendeeStatusUpdate(BaseModel):
    status: AttendeeStatus


class AttendeeResponse(BaseModel):
    id: int
    event_id: int
    subject_id: str
    registered_by: str
    kind: AttendeeKind
    name: Optional[str]
    age_group: AgeGroup
    status: AttendeeStatus
    waitlist_position: Optional[int]
    joined_waitlist_at: Optional[datetime]
    promoted_at: Optional[datetime]
    created_at: datetime

    model_config = {"from_attributes": True}


class StatusChangeResponse(BaseModel):
    event_id: int
    attendee_id: int
    previous_status: Optional[AttendeeStatus]
    requested_status: AttendeeStatus
    status: AttendeeStatus
    redirected_to_waitlist: bool
    waitlist_position: Optional[int]
    confirmed_count: int
    capacity: Optional[int]
    created: bool

    model_config = {"from_attributes": True}


class RemovalResponse(BaseModel):
    event_id: int
    attendee_id: int
    previous_status: AttendeeStatus
    confirmed_count: int

    model_config = {"from_attributes": True}


class AttendeeCountsResponse(BaseModel):
    event_id: int
    capacity: Optional[int]
    confirmed_count: int
    by_status: dict[str, int]
    confirmed_by_age_group: dict[str, int]


class RecalculationResponse(BaseModel):
    event_id: int
    recalculated_count: int

    model_config = {"from_attributes": True}


class ReconcileResponse(BaseModel):
    event_id: int
    previous_count: int
    confirmed_count: int

    model_config = {"from_attributes": True}


class PromotionResponse(BaseModel):
    event_id: int
    promoted: list[int]
    stopped_reason: str

    model_config = {"from_attributes": True}
