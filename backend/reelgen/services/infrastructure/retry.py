"""
Retry executor for transient failures (vendor calls, storage transfers).
"""

import asyncio
import random
from enum import Enum
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from reelgen.core import get_logger

logger = get_logger(__name__, component="retry")

T = TypeVar("T")


class Backoff(str, Enum):
    LINEAR = "linear"
    EXPONENTIAL = "exponential"
    EXPONENTIAL_JITTER = "exponential_jitter"


class RetryExecutor:
    """Runs an async operation up to ``max_attempts`` times.

    Between attempts it sleeps according to the backoff strategy. The last
    error is re-raised unchanged. Exceptions that are not instances of
    ``retry_on`` propagate on the first occurrence.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 10.0,
        backoff: Backoff = Backoff.LINEAR,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.backoff = backoff
        self._sleep = sleep

    def delay_for(self, attempt: int, backoff: Optional[Backoff] = None) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        strategy = backoff or self.backoff
        if strategy is Backoff.LINEAR:
            return min(self.base_delay * attempt, self.max_delay)

        delay = min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)
        if strategy is Backoff.EXPONENTIAL_JITTER:
            delay += random.uniform(0, delay * 0.5)
        return delay

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        max_attempts: Optional[int] = None,
        *,
        backoff: Optional[Backoff] = None,
        description: str = "operation",
        retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    ) -> T:
        attempts = max_attempts or self.max_attempts
        for attempt in range(1, attempts + 1):
            try:
                return await operation()
            except retry_on as exc:
                if attempt >= attempts:
                    logger.error(
                        f"{description} failed after {attempts} attempts",
                        extra={"attempts": attempts, "error": str(exc)},
                    )
                    raise
                delay = self.delay_for(attempt, backoff)
                logger.warning(
                    f"{description} failed (attempt {attempt}/{attempts}), retrying in {delay:.2f}s",
                    extra={"attempt": attempt, "delay_seconds": delay, "error": str(exc)},
                )
                await self._sleep(delay)

        raise RuntimeError("unreachable")  # pragma: no cover
