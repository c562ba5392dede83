"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from rsvp_admission.api.routes import events, attendees, admin

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(events.router)
api_router.include_router(attendees.router)
api_router.include_router(admin.router)
