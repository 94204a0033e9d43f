"""
Exponential backoff schedule shared by request retries and socket reconnection
"""

import random
from dataclasses import dataclass, field
from typing import Callable, Optional


@dataclass
class BackoffPolicy:
    """
    delay(attempt) = min(base_delay * multiplier ** attempt + jitter, max_delay)

    jitter is drawn from [0, jitter) on every call. A max_delay of None
    leaves the schedule uncapped.
    """
    base_delay: float = 1.0
    max_delay: Optional[float] = 10.0
    jitter: float = 1.0
    multiplier: float = 2.0
    rng: Callable[[], float] = field(default=random.random, repr=False, compare=False)

    def base(self, attempt: int) -> float:
        """Deterministic component of the delay"""
        return self.base_delay * (self.multiplier ** max(attempt, 0))

    def delay(self, attempt: int) -> float:
        delay = self.base(attempt)
        if self.jitter > 0:
            delay += self.rng() * self.jitter
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return delay


def retry_backoff(base_delay: float = 1.0, max_delay: float = 10.0, jitter: float = 1.0) -> BackoffPolicy:
    """Policy used between request retries"""
    return BackoffPolicy(base_delay=base_delay, max_delay=max_delay, jitter=jitter)


def reconnect_backoff(base_delay: float = 1.0) -> BackoffPolicy:
    """Policy used between socket reconnection attempts, bounded only by the attempt limit"""
    return BackoffPolicy(base_delay=base_delay, max_delay=None, jitter=0.0)
