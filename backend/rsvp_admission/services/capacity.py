"""
Capacity evaluator.

Pure and stateless: answers "can N more people be confirmed?" from an event's
capacity and its confirmed counter. Callers must pass a counter read inside
the current transaction, never a cached one.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class CapacityEvaluator:
    capacity: Optional[int]
    confirmed_count: int

    @property
    def unlimited(self) -> bool:
        return self.capacity is None

    def remaining_slots(self) -> Optional[int]:
        """Slots left, or None when the event has no capacity limit.

        May be negative if the counter already exceeds a capacity that was
        lowered after people confirmed.
        """
        if self.capacity is None:
            return None
        return self.capacity - self.confirmed_count

    def can_confirm(self, n: int = 1) -> bool:
        remaining = self.remaining_slots()
        return remaining is None or remaining >= n
