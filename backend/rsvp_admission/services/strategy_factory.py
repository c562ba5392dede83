"""
Collaborator factory.
Configures which tier lookup and slot publisher the admission engine uses.
"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rsvp_admission.core.config import Settings, get_settings
from rsvp_admission.services.admission_service import AdmissionEngine
from rsvp_admission.services.interfaces.slot_publisher import (
    LoggingSlotPublisher,
    RedisSlotPublisher,
    SlotFreedPublisher,
)
from rsvp_admission.services.interfaces.tier_lookup import (
    DefaultTierLookup,
    MemberTierLookup,
    TierLookup,
)
from rsvp_admission.services.retry import ConflictRetryController
from rsvp_admission.services.waitlist import WaitlistManager


def get_tier_lookup(
    session_factory: async_sessionmaker[AsyncSession],
    settings: Settings,
) -> TierLookup:
    """
    Tier source selection via TIER_LOOKUP:
    - default: no membership data, everyone gets DEFAULT_TIER
    - database: members table, cached in Redis
    """
    if settings.TIER_LOOKUP == "database":
        return MemberTierLookup(session_factory, default_tier=settings.DEFAULT_TIER)
    return DefaultTierLookup(default_tier=settings.DEFAULT_TIER)


def get_slot_publisher(settings: Settings) -> SlotFreedPublisher:
    """Publisher selection via SLOT_PUBLISHER: log (default) or redis."""
    if settings.SLOT_PUBLISHER == "redis":
        return RedisSlotPublisher(settings.SLOT_FREED_CHANNEL)
    return LoggingSlotPublisher()


def build_admission_engine(
    session_factory: async_sessionmaker[AsyncSession],
    settings: Settings = None,
) -> AdmissionEngine:
    settings = settings or get_settings()
    return AdmissionEngine(
        session_factory=session_factory,
        tier_lookup=get_tier_lookup(session_factory, settings),
        publisher=get_slot_publisher(settings),
        waitlist=WaitlistManager(
            tier_factors=settings.WAITLIST_TIER_FACTORS,
            default_tier=settings.DEFAULT_TIER,
            mode=settings.WAITLIST_PRIORITY_MODE,
        ),
        retry=ConflictRetryController(
            max_retries=settings.ADMISSION_MAX_RETRIES,
            max_delay_ms=settings.ADMISSION_RETRY_MAX_DELAY_MS,
        ),
    )
