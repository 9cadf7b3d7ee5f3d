# FILE: coursestore/services/receipt_service.py
"""Receipt numbers and the bounded retry used to allocate them."""
import logging
import secrets
import string
from datetime import date
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import IntegrityError

from coursestore.core.config import RECEIPT_PREFIX, RECEIPT_MAX_ATTEMPTS

logger = logging.getLogger("coursestore.receipts")

T = TypeVar("T")

RECEIPT_ALPHABET = string.digits + string.ascii_uppercase  # base 36
RECEIPT_SUFFIX_LEN = 6


def generate_receipt_candidate(today: Optional[date] = None, prefix: str = RECEIPT_PREFIX) -> str:
    """LC-<YYYYMMDD>-<6 base-36 chars>, suffix from the OS CSPRNG."""
    day = (today or date.today()).strftime("%Y%m%d")
    suffix = "".join(secrets.choice(RECEIPT_ALPHABET) for _ in range(RECEIPT_SUFFIX_LEN))
    return f"{prefix}-{day}-{suffix}"


class RetriesExhausted(Exception):
    def __init__(self, attempts: int, last_error: IntegrityError):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"gave up after {attempts} attempts: {last_error}")


async def retry_on_conflict(
    operation: Callable[[], Awaitable[T]],
    is_retryable: Callable[[IntegrityError], bool],
    attempts: int = RECEIPT_MAX_ATTEMPTS,
) -> T:
    """Run operation; re-run it while it fails with a retryable IntegrityError.

    Non-retryable errors propagate untouched. After `attempts` retryable
    failures in a row, raises RetriesExhausted wrapping the last one.
    """
    if attempts < 1:
        raise ValueError("attempts must be >= 1")

    last: Optional[IntegrityError] = None
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except IntegrityError as exc:
            if not is_retryable(exc):
                raise
            last = exc
            logger.warning("Retryable conflict on attempt %d/%d: %s", attempt, attempts, exc.orig)
    raise RetriesExhausted(attempts, last)
