"""
Timing service for retries and backoff.

Centralizes every delay the engine takes so tests can inject a zero-delay policy
or a fake sleep.
"""

import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable

from daily_alchemy.application.interfaces import ILoggingService


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff with jitter and an overall time budget."""

    base_delay: float = 0.25
    factor: float = 2.0
    max_retries: int = 3
    jitter: float = 0.2
    time_budget: float = 15.0

    @classmethod
    def immediate(cls, max_retries: int = 3, time_budget: float = 15.0) -> "RetryPolicy":
        """Policy that retries without waiting."""
        return cls(base_delay=0.0, factor=1.0, max_retries=max_retries, jitter=0.0, time_budget=time_budget)


class TimingService:
    """
    Service that handles all timing and delay operations.

    All values come from the RetryPolicy it was built with.
    """

    def __init__(
        self,
        logging_service: ILoggingService,
        policy: RetryPolicy = RetryPolicy(),
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ):
        """
        Initialize timing service.

        Args:
            logging_service: Service for logging timing operations
            policy: Backoff parameters
            sleep: Awaitable sleep (replaced in tests)
            rng: Uniform [0, 1) source used for jitter
        """
        self.logger = logging_service
        self.policy = policy
        self._sleep = sleep
        self._rng = rng

    def backoff_delay(self, retry_number: int) -> float:
        """
        Delay before the given retry (1-based): base * factor^(n-1), jittered by ±jitter.
        """
        nominal = self.policy.base_delay * (self.policy.factor ** max(0, retry_number - 1))
        spread = (self._rng() * 2.0 - 1.0) * self.policy.jitter
        return max(0.0, nominal * (1.0 + spread))

    async def wait_before_retry(self, retry_number: int, description: str = "") -> float:
        """Sleep for the backoff delay of a retry and return it."""
        delay = self.backoff_delay(retry_number)
        self.logger.debug(f"⏱️ Retry {retry_number}/{self.policy.max_retries} {description} in {delay:.3f}s")
        if delay > 0:
            await self._sleep(delay)
        return delay
