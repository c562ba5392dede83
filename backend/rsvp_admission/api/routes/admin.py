"""
Administrative repair endpoints for one event's admission state.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from rsvp_admission.api.dependencies import get_admission_engine
from rsvp_admission.schemas.attendee import (
    PromotionResponse,
    RecalculationResponse,
    ReconcileResponse,
)
from rsvp_admission.services.admission_service import AdmissionEngine
from rsvp_admission.services.promotion_service import promote_waitlisted

router = APIRouter(prefix="/events/{event_id}", tags=["Admin"])


@router.post("/waitlist/recalculate", response_model=RecalculationResponse)
async def recalculate_waitlist_endpoint(
    event_id: int,
    engine: AdmissionEngine = Depends(get_admission_engine),
):
    """Renumber the waitlist 1..k. Safe to call repeatedly."""
    return await engine.recalculate_waitlist_positions(event_id)


@router.post("/waitlist/promote", response_model=PromotionResponse)
async def promote_waitlist_endpoint(
    event_id: int,
    max_promotions: Optional[int] = Query(None, ge=1),
    engine: AdmissionEngine = Depends(get_admission_engine),
):
    """Fill open capacity from the top of the waitlist."""
    return await promote_waitlisted(engine, event_id, max_promotions)


@router.post("/confirmed-count/reconcile", response_model=ReconcileResponse)
async def reconcile_confirmed_count_endpoint(
    event_id: int,
    engine: AdmissionEngine = Depends(get_admission_engine),
):
    """Re-derive the confirmed counter from attendee records."""
    return await engine.reconcile_confirmed_count(event_id)
