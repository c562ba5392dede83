"""
Collaborator interfaces for dependency inversion.
Allows swapping implementations without changing admission logic.
"""

from .tier_lookup import TierLookup, DefaultTierLookup, MemberTierLookup
from .slot_publisher import SlotFreed, SlotFreedPublisher, LoggingSlotPublisher, RedisSlotPublisher

__all__ = [
    'TierLookup', 'DefaultTierLookup', 'MemberTierLookup',
    'SlotFreed', 'SlotFreedPublisher', 'LoggingSlotPublisher', 'RedisSlotPublisher',
]
