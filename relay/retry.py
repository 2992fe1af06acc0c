"""
Retry - Relay Module
Deadline-bounded attempts and a fixed-interval retry policy
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DeadlineExceeded(Exception):
    """Raised when a single attempt runs past its deadline and is cancelled."""

    def __init__(self, timeout: float) -> None:
        super().__init__(f"Attempt exceeded {timeout}s deadline")
        self.timeout = timeout


async def call_with_deadline(operation: Callable[[], Awaitable[T]], timeout: float) -> T:
    """
    Await one attempt, cancelling it once `timeout` seconds have elapsed.

    Raises:
        DeadlineExceeded: the attempt was aborted by the deadline
    """
    try:
        return await asyncio.wait_for(operation(), timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise DeadlineExceeded(timeout) from exc


@dataclass(frozen=True)
class RetryResult(Generic[T]):
    value: T
    attempts: int


async def retry_with_backoff(
    operation: Callable[[int], Awaitable[T]],
    max_retries: int,
    backoff: float,
    should_retry: Callable[[T], bool],
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    label: str = "request",
) -> RetryResult[T]:
    """
    Run `operation` until it yields an acceptable result or the budget runs out.

    The operation receives the 1-based attempt number and must return its
    outcome rather than raise. The wait between attempts is always `backoff`
    seconds.

    Returns:
        The first result `should_retry` rejects, or the last result once
        `max_retries` retries have been spent, with the attempt count.
    """
    if max_retries < 0:
        raise ValueError("max_retries must be >= 0")
    if backoff < 0:
        raise ValueError("backoff must be >= 0")

    attempt = 1
    value = await operation(attempt)
    while attempt <= max_retries and should_retry(value):
        logger.info(
            "Retrying %s after %ss (attempt %s/%s)...",
            label,
            backoff,
            attempt,
            max_retries,
        )
        await sleep(backoff)
        attempt += 1
        value = await operation(attempt)

    return RetryResult(value=value, attempts=attempt)
