"""Exponential backoff with jitter for idempotent async operations.

Only reads and pure computations go through here; database writes are never
retried.
"""

import asyncio
import functools
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, FrozenSet, Optional, TypeVar

import httpx

from hera.utils.logging import get_logger

LOGGER = get_logger(__name__)

T = TypeVar("T")

DEFAULT_RETRY_STATUSES = frozenset({429})


@dataclass(frozen=True)
class RetryPolicy:
    """How many times and how patiently to retry.

    Attributes:
        max_attempts: Total attempts including the first one
        initial_interval: Delay in seconds before the first retry
        backoff_coefficient: Multiplier applied per retry
        maximum_interval: Cap on the exponential part of the delay
        jitter: Upper bound of the uniform random seconds added to each delay
        retry_statuses: HTTP statuses retried besides 5xx
    """

    max_attempts: int = 3
    initial_interval: float = 1.0
    backoff_coefficient: float = 2.0
    maximum_interval: float = 30.0
    jitter: float = 0.0
    retry_statuses: FrozenSet[int] = field(default_factory=lambda: DEFAULT_RETRY_STATUSES)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def delay(self, attempt: int, rng: Callable[[float, float], float] = random.uniform) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (0-based)."""
        base = min(self.initial_interval * (self.backoff_coefficient ** attempt), self.maximum_interval)
        if self.jitter > 0:
            base += rng(0, self.jitter)
        return base


def is_transient_error(error: BaseException, retry_statuses: FrozenSet[int] = DEFAULT_RETRY_STATUSES) -> bool:
    """Network failures, 5xx, and the listed statuses are worth another try."""
    if isinstance(error, httpx.HTTPStatusError):
        status_code = error.response.status_code
        return status_code >= 500 or status_code in retry_statuses
    # Timeouts, connection resets and DNS failures are all TransportError
    return isinstance(error, httpx.TransportError)


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    is_retryable: Optional[Callable[[BaseException], bool]] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    description: str = "operation",
) -> T:
    """Run ``operation`` until it succeeds, fails permanently, or attempts run out.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        policy: Attempt ceiling and delay schedule
        is_retryable: Failure classifier; defaults to ``is_transient_error``
            with the policy's statuses
        sleep: Awaitable sleep, injectable for tests
        description: Label used in log lines

    Returns:
        The first successful result

    Raises:
        The final error, unchanged, when it is not retryable or no attempts remain
    """
    if is_retryable is None:
        is_retryable = functools.partial(is_transient_error, retry_statuses=policy.retry_statuses)

    for attempt in range(policy.max_attempts):
        try:
            return await operation()
        except Exception as e:
            remaining = policy.max_attempts - attempt - 1
            if remaining <= 0 or not is_retryable(e):
                raise

            wait_time = policy.delay(attempt)
            LOGGER.warning(
                f"{description} failed (attempt {attempt + 1}/{policy.max_attempts}), "
                f"retrying in {wait_time:.2f}s: {e}",
                extra={"remaining_attempts": remaining},
            )
            await sleep(wait_time)

    # Unreachable: the loop either returns or raises
    raise RuntimeError("retry loop exited without a result")

