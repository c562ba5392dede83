"""
Pydantic schemas for event-related request/response validation.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    starts_at: Optional[datetime] = None
    capacity: Optional[int] = Field(None, ge=0, le=100000)  # None = unlimited
    waitlist_enabled: bool = False
    waitlist_limit: Optional[int] = Field(None, ge=0)


class EventResponse(BaseModel):
    id: int
    title: str
    starts_at: Optional[datetime]
    capacity: Optional[int]
    confirmed_count: int
    waitlist_enabled: bool
    waitlist_limit: Optional[int]

    model_config = {"from_attributes": True}
