"""
Circuit breaker gating the request pipeline

One instance is shared by every call made through a client, so failures of
one logical call affect the gating of unrelated calls.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from ..clock import Clock, system_clock

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    """Circuit breaker states"""
    CLOSED = "closed"       # Normal operation
    OPEN = "open"           # Failing, rejecting requests
    HALF_OPEN = "half_open" # Allowing a single probe


@dataclass
class CircuitBreakerConfig:
    """Configuration for circuit breakers"""
    failure_threshold: int = 5          # Consecutive failures before opening
    reset_timeout_seconds: float = 60.0 # Time in OPEN before a probe is allowed


class CircuitBreaker:
    """Consecutive-failure circuit breaker with a single-probe half-open state"""

    def __init__(self, config: CircuitBreakerConfig = None, clock: Clock = None, name: str = "api"):
        self.name = name
        self.config = config or CircuitBreakerConfig()
        self.clock = clock or system_clock
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.last_failure_time: Optional[float] = None
        self._probe_in_flight = False

    def can_request(self) -> bool:
        """Gate for every attempt; may move OPEN to HALF_OPEN"""
        if self.state == CircuitState.CLOSED:
            return True

        if self.state == CircuitState.OPEN:
            elapsed = self.clock.monotonic() - (self.last_failure_time or 0.0)
            if elapsed < self.config.reset_timeout_seconds:
                return False
            self.state = CircuitState.HALF_OPEN
            self._probe_in_flight = True
            logger.info(f"Circuit breaker {self.name} transitioning to HALF_OPEN")
            return True

        # HALF_OPEN: only the one probe until its outcome is recorded
        if self._probe_in_flight:
            return False
        self._probe_in_flight = True
        return True

    def record_success(self) -> None:
        if self.state != CircuitState.CLOSED:
            logger.info(f"Circuit breaker {self.name} transitioning to CLOSED")
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self._probe_in_flight = False

    def record_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = self.clock.monotonic()
        self._probe_in_flight = False

        if self.state == CircuitState.HALF_OPEN:
            self.state = CircuitState.OPEN
            logger.warning(f"Circuit breaker {self.name} probe failed, transitioning back to OPEN")
        elif self.state == CircuitState.CLOSED and self.failure_count >= self.config.failure_threshold:
            self.state = CircuitState.OPEN
            logger.warning(
                f"Circuit breaker {self.name} transitioning to OPEN after {self.failure_count} failures"
            )

    def release_probe(self) -> None:
        """End a half-open probe whose outcome neither closes nor reopens the circuit"""
        self._probe_in_flight = False

    def reset(self) -> None:
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.last_failure_time = None
        self._probe_in_flight = False

    def get_state(self) -> Dict[str, Any]:
        """Get current circuit breaker state"""
        last_failure = None
        if self.last_failure_time is not None:
            # Convert the monotonic reading to wall time for display
            offset = self.clock.time() - self.clock.monotonic()
            last_failure = datetime.fromtimestamp(self.last_failure_time + offset, tz=timezone.utc).isoformat()
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "last_failure_time": last_failure,
            "config": {
                "failure_threshold": self.config.failure_threshold,
                "reset_timeout_seconds": self.config.reset_timeout_seconds,
            },
        }
