"""Unit tests for the circuit breaker.

Tests cover:
- Closed -> Open after the failure threshold
- Rejection while Open until the reset timeout elapses
- Single-probe Half-open state and its exits
"""

import pytest

from journal_client.error_recovery.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitState,
)

from conftest import FakeClock


@pytest.fixture
def breaker(clock):
    return CircuitBreaker(CircuitBreakerConfig(failure_threshold=3, reset_timeout_seconds=60.0), clock=clock)


class TestClosedState:
    """Tests for the closed state."""

    def test_defaults(self):
        """Default config opens after 5 failures with a 60s reset."""
        config = CircuitBreakerConfig()
        assert config.failure_threshold == 5
        assert config.reset_timeout_seconds == 60.0

    def test_allows_requests(self, breaker):
        """A fresh breaker is closed and allows requests."""
        assert breaker.state == CircuitState.CLOSED
        assert breaker.can_request() is True

    def test_stays_closed_below_threshold(self, breaker):
        """Failures below the threshold keep the circuit closed."""
        breaker.record_failure()
        breaker.record_failure()
        assert breaker.state == CircuitState.CLOSED
        assert breaker.failure_count == 2
        assert breaker.can_request() is True

    def test_success_resets_failure_count(self, breaker):
        """A success resets the consecutive failure count."""
        breaker.record_failure()
        breaker.record_failure()
        breaker.record_success()
        assert breaker.failure_count == 0
        breaker.record_failure()
        breaker.record_failure()
        assert breaker.state == CircuitState.CLOSED

    def test_opens_at_threshold(self, breaker):
        """T consecutive failures open the circuit and block the next request."""
        for _ in range(3):
            breaker.record_failure()
        assert breaker.state == CircuitState.OPEN
        assert breaker.last_failure_time is not None
        assert breaker.can_request() is False


class TestOpenAndHalfOpen:
    """Tests for the open and half-open states."""

    def _open(self, breaker):
        for _ in range(3):
            breaker.record_failure()

    def test_rejects_until_reset_timeout(self, breaker, clock):
        """Open circuit rejects until reset_timeout has elapsed."""
        self._open(breaker)
        clock.advance(59.9)
        assert breaker.can_request() is False
        assert breaker.state == CircuitState.OPEN

    def test_allows_exactly_one_probe(self, breaker, clock):
        """After the reset timeout exactly one attempt is allowed."""
        self._open(breaker)
        clock.advance(60.0)
        assert breaker.can_request() is True
        assert breaker.state == CircuitState.HALF_OPEN
        assert breaker.can_request() is False

    def test_probe_success_closes(self, breaker, clock):
        """A successful probe closes the circuit with a zero count."""
        self._open(breaker)
        clock.advance(60.0)
        breaker.can_request()
        breaker.record_success()
        assert breaker.state == CircuitState.CLOSED
        assert breaker.failure_count == 0
        assert breaker.can_request() is True

    def test_probe_failure_reopens(self, breaker, clock):
        """A failed probe reopens the circuit and restarts the timeout."""
        self._open(breaker)
        clock.advance(60.0)
        breaker.can_request()
        breaker.record_failure()
        assert breaker.state == CircuitState.OPEN
        assert breaker.last_failure_time == clock.now
        clock.advance(30.0)
        assert breaker.can_request() is False

    def test_released_probe_allows_another(self, breaker, clock):
        """Releasing a probe lets the next caller probe."""
        self._open(breaker)
        clock.advance(60.0)
        assert breaker.can_request() is True
        breaker.release_probe()
        assert breaker.state == CircuitState.HALF_OPEN
        assert breaker.can_request() is True


class TestStateSnapshot:
    """Tests for get_state and reset."""

    def test_get_state(self, breaker):
        """get_state reports state, count and config."""
        breaker.record_failure()
        state = breaker.get_state()
        assert state["state"] == "closed"
        assert state["failure_count"] == 1
        assert state["last_failure_time"] is not None
        assert state["config"]["failure_threshold"] == 3

    def test_reset(self, breaker):
        """reset returns the breaker to a fresh closed state."""
        for _ in range(3):
            breaker.record_failure()
        breaker.reset()
        assert breaker.state == CircuitState.CLOSED
        assert breaker.failure_count == 0
        assert breaker.last_failure_time is None

    def test_isolated_instances(self):
        """Breakers built separately do not share state."""
        clock = FakeClock()
        first = CircuitBreaker(CircuitBreakerConfig(failure_threshold=1), clock=clock)
        second = CircuitBreaker(CircuitBreakerConfig(failure_threshold=1), clock=clock)
        first.record_failure()
        assert first.state == CircuitState.OPEN
        assert second.state == CircuitState.CLOSED
