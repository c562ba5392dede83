"""
Conflict/retry controller for admission transactions.

Policy:
  - A TransactionConflict (a concurrent writer got to the event first) is
    retried at most `max_retries` times, after a random delay in
    [0, max_delay_ms] so that colliding callers spread out
  - The last conflict is surfaced to the caller, never swallowed
  - Business rejections (CapacityExceeded, not-found, ...) are never retried
  - StoreUnavailable is not retried here; the caller decides, so an
    overloaded database does not get extra load from us

Database driver errors are classified before the retry decision: lost
optimistic races, serialization failures, deadlocks and lock contention are
conflicts; anything else operational is StoreUnavailable.
"""

import asyncio
import functools
import random
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from rsvp_admission.core.exceptions import AdmissionError, StoreUnavailable, TransactionConflict
from rsvp_admission.core.logging import get_logger
from rsvp_admission.core.metrics import admission_retries, record_admission

logger = get_logger(__name__)

T = TypeVar("T")

# serialization_failure, deadlock_detected, lock_not_available
CONFLICT_SQLSTATES = {"40001", "40P01", "55P03"}
CONFLICT_MESSAGES = ("database is locked", "could not serialize", "deadlock")


def classify_store_error(exc: Exception, event_id: int) -> AdmissionError:
    if isinstance(exc, IntegrityError):
        # Another transaction inserted the same (event, subject) first.
        return TransactionConflict(event_id)
    if isinstance(exc, DBAPIError):
        orig = exc.orig
        sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
        if sqlstate in CONFLICT_SQLSTATES:
            return TransactionConflict(event_id)
        if any(marker in str(orig).lower() for marker in CONFLICT_MESSAGES):
            return TransactionConflict(event_id)
    return StoreUnavailable(str(exc))


async def translate_store_errors(event_id: int, operation: Callable[[], Awaitable[T]]) -> T:
    """Run one transaction attempt, turning driver errors into AdmissionErrors."""
    try:
        return await operation()
    except (DBAPIError, PoolTimeoutError, OSError) as e:
        raise classify_store_error(e, event_id) from e


class ConflictRetryController:
    def __init__(self, max_retries: int = 1, max_delay_ms: int = 250):
        self.max_retries = max_retries
        self.max_delay_ms = max_delay_ms

    def backoff_delay(self) -> float:
        return random.uniform(0, self.max_delay_ms) / 1000

    async def run(self, label: str, event_id: int, operation: Callable[[], Awaitable[T]]) -> T:
        attempt = 1
        while True:
            try:
                return await translate_store_errors(event_id, operation)
            except TransactionConflict:
                if attempt > self.max_retries:
                    record_admission("conflict")
                    logger.warning(
                        "admission_conflict_exhausted",
                        operation=label,
                        event_id=event_id,
                        attempts=attempt,
                    )
                    raise TransactionConflict(event_id, attempts=attempt)

                delay = self.backoff_delay()
                admission_retries.inc()
                logger.info(
                    "admission_conflict_retry",
                    operation=label,
                    event_id=event_id,
                    attempt=attempt,
                    delay_ms=round(delay * 1000, 1),
                )
                await asyncio.sleep(delay)
                attempt += 1


def retry_on_conflict(label: str):
    """
    Method decorator: run the wrapped coroutine under `self.retry`.

    The wrapped method must take `event_id` as its first argument and must
    open a fresh transaction on every call.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self, event_id: int, *args, **kwargs):
            return await self.retry.run(
                label,
                event_id,
                lambda: func(self, event_id, *args, **kwargs),
            )

        return wrapper

    return decorator
