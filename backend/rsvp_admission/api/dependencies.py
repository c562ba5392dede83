"""
Shared FastAPI dependencies.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rsvp_admission.db.session import get_session_factory
from rsvp_admission.services.admission_service import AdmissionEngine
from rsvp_admission.services.strategy_factory import build_admission_engine


def get_admission_engine(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> AdmissionEngine:
    return build_admission_engine(session_factory)
