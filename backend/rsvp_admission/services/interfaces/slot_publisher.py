"""
Slot-freed publication interface.

The admission core does not promote anyone itself. After a transition that
takes someone off the waitlist or releases a confirmed slot has committed,
it publishes a SlotFreed fact; the promotion notifier reacts to it in its own,
later transaction. Publication is best effort and can never undo or fail the
committed transition.

Implementations:
- LoggingSlotPublisher: structured log line only (single node, tests)
- RedisSlotPublisher: JSON message on a Redis pub/sub channel
"""

import json
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Optional

from rsvp_admission.core.logging import get_logger
from rsvp_admission.core.metrics import record_slot_freed, redis_connection_errors
from rsvp_admission.infrastructure.redis_client import get_redis

logger = get_logger(__name__)

WAITLIST_LEFT = "waitlist_left"
CAPACITY_RELEASED = "capacity_released"


@dataclass(frozen=True)
class SlotFreed:
    event_id: int
    reason: str  # waitlist_left, capacity_released
    attendee_id: Optional[int] = None
    freed_position: Optional[int] = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_message(self) -> str:
        payload = asdict(self)
        payload["occurred_at"] = self.occurred_at.isoformat()
        return json.dumps(payload)


class SlotFreedPublisher(ABC):
    async def publish(self, fact: SlotFreed) -> None:
        try:
            await self.send(fact)
        except Exception as e:
            logger.error(
                "slot_freed_publish_failed",
                event_id=fact.event_id,
                reason=fact.reason,
                error=str(e),
            )
            return
        record_slot_freed(fact.reason)

    @abstractmethod
    async def send(self, fact: SlotFreed) -> None:
        pass


class LoggingSlotPublisher(SlotFreedPublisher):
    async def send(self, fact: SlotFreed) -> None:
        logger.info(
            "slot_freed_published",
            event_id=fact.event_id,
            reason=fact.reason,
            attendee_id=fact.attendee_id,
            freed_position=fact.freed_position,
        )


class RedisSlotPublisher(SlotFreedPublisher):
    def __init__(self, channel: str):
        self.channel = channel

    async def send(self, fact: SlotFreed) -> None:
        client = await get_redis()
        if not client:
            redis_connection_errors.inc()
            raise ConnectionError("Redis unavailable")
        receivers = await client.publish(self.channel, fact.to_message())
        logger.info(
            "slot_freed_published",
            event_id=fact.event_id,
            reason=fact.reason,
            channel=self.channel,
            receivers=receivers,
        )
