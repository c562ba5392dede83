"""
Priority tier lookup interface.

Tier only biases where a new joiner lands on the waitlist, so lookups are a
best-effort side channel: they never join the admission transaction, and any
failure falls back to the default tier instead of blocking admission.

Implementations:
- DefaultTierLookup: everyone gets the default tier
- MemberTierLookup: reads the members table (own session), cached in Redis
"""

from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rsvp_admission.core.logging import get_logger
from rsvp_admission.core.metrics import tier_lookup_failures
from rsvp_admission.models.member import Member
from rsvp_admission.services.cache_service import get_cached_tier, set_cached_tier

logger = get_logger(__name__)


class TierLookup(ABC):
    def __init__(self, default_tier: str = "free"):
        self.default_tier = default_tier

    @abstractmethod
    async def fetch_tier(self, subject_id: str) -> Optional[str]:
        """Return the subject's tier, or None if unknown. May raise."""

    async def get_priority_tier(self, subject_id: str) -> str:
        try:
            tier = await self.fetch_tier(subject_id)
        except Exception as e:
            tier_lookup_failures.inc()
            logger.warning("tier_lookup_failed", subject_id=subject_id, error=str(e))
            return self.default_tier
        return tier or self.default_tier


class DefaultTierLookup(TierLookup):
    """No membership source configured - everyone queues in arrival order."""

    async def fetch_tier(self, subject_id: str) -> Optional[str]:
        return None


class MemberTierLookup(TierLookup):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], default_tier: str = "free"):
        super().__init__(default_tier)
        self.session_factory = session_factory

    async def fetch_tier(self, subject_id: str) -> Optional[str]:
        cached = await get_cached_tier(subject_id)
        if cached:
            return cached

        async with self.session_factory() as session:
            result = await session.execute(
                select(Member.membership_tier).where(Member.subject_id == subject_id)
            )
            tier = result.scalar_one_or_none()

        if tier:
            await set_cached_tier(subject_id, tier)
        return tier
