"""
Resilient HTTP request execution

Each logical call goes through:
- Circuit breaker gate before every attempt
- Connectivity check, deferring the call to the offline queue when offline
- An attempt deadline that grows with each retry
- Error classification and breaker feedback
- Exponential backoff with jitter between retries
"""

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import httpx

from ..clock import Clock, system_clock
from ..config import ClientConfig
from ..error_recovery.backoff import BackoffPolicy, retry_backoff
from ..error_recovery.circuit_breaker import CircuitBreaker
from ..error_recovery.errors import (
    ClassifiedError,
    ErrorClassifier,
    ErrorKind,
    RequestError,
    log_request_error,
)
from ..task_queue.offline_queue import OfflineQueue, QueuedRequest
from .connectivity import ConnectivityMonitor

logger = logging.getLogger(__name__)


@dataclass
class RetryContext:
    """Per-call retry state, discarded when the call ends"""
    url: str
    options: Dict[str, Any]
    max_retries: int
    attempts_remaining: int

    @property
    def method(self) -> str:
        return self.options.get("method", "GET").upper()

    @property
    def endpoint(self) -> str:
        return urlparse(self.url).path or self.url

    @property
    def attempt(self) -> int:
        """Zero-based index of the current attempt"""
        return self.max_retries - self.attempts_remaining


@dataclass
class AttemptOutcome:
    """Result of one network attempt: either data or a classified error"""
    data: Any = None
    error: Optional[ClassifiedError] = None
    passthrough: Optional[BaseException] = field(default=None, repr=False)

    @property
    def ok(self) -> bool:
        return self.error is None and self.passthrough is None


class RequestExecutor:
    """Runs HTTP calls through the breaker, offline queue and retry loop"""

    def __init__(
        self,
        config: ClientConfig,
        circuit_breaker: CircuitBreaker,
        connectivity: ConnectivityMonitor,
        offline_queue: OfflineQueue,
        classifier: ErrorClassifier = None,
        clock: Clock = None,
        http_client: Optional[httpx.AsyncClient] = None,
        backoff: Optional[BackoffPolicy] = None,
    ):
        self.config = config
        self.circuit_breaker = circuit_breaker
        self.connectivity = connectivity
        self.offline_queue = offline_queue
        self.classifier = classifier or ErrorClassifier()
        self.clock = clock or system_clock
        self.backoff = backoff or retry_backoff(
            base_delay=config.retry_delay,
            max_delay=config.max_retry_delay,
            jitter=config.retry_jitter,
        )
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient()
        self.request_stats = defaultdict(lambda: {"attempts": 0, "successes": 0, "failures": 0, "retries": 0})

    async def execute(
        self,
        url: str,
        options: Optional[Dict[str, Any]] = None,
        max_retries: Optional[int] = None,
    ) -> Any:
        """
        Execute a logical call with retries

        Args:
            url: Absolute request URL
            options: method, headers and json body of the request
            max_retries: Retry budget, defaults to the configured value

        Returns:
            Decoded JSON body, or the raw text for non-JSON bodies

        Raises:
            RequestError: classified failure; a call deferred to the offline
                queue fails with NETWORK and its replay result is not returned
        """
        return await self._execute(url, options, max_retries, allow_enqueue=True)

    async def _execute(
        self,
        url: str,
        options: Optional[Dict[str, Any]],
        max_retries: Optional[int],
        allow_enqueue: bool,
    ) -> Any:
        options = dict(options or {})
        retries = self.config.max_retries if max_retries is None else max_retries
        ctx = RetryContext(url=url, options=options, max_retries=retries, attempts_remaining=retries)
        stats = self.request_stats[ctx.endpoint]

        while True:
            if not self.circuit_breaker.can_request():
                raise self._error(
                    ErrorKind.SERVICE_UNAVAILABLE,
                    "Service temporarily unavailable",
                    ctx,
                    failure_count=self.circuit_breaker.failure_count,
                )

            if not await self.connectivity.is_online():
                # The breaker granted this attempt; hand a half-open probe back
                self.circuit_breaker.release_probe()
                if allow_enqueue:
                    self.offline_queue.enqueue(QueuedRequest(
                        execute=lambda: self._execute(url, options, retries, allow_enqueue=False),
                        enqueued_at=self.clock.time(),
                        description=f"{ctx.method} {ctx.endpoint}",
                    ))
                raise self._error(ErrorKind.NETWORK, "No internet connection available", ctx)

            stats["attempts"] += 1
            outcome = await self._attempt(ctx)

            if outcome.ok:
                self.circuit_breaker.record_success()
                stats["successes"] += 1
                if ctx.attempt > 0:
                    logger.info(f"{ctx.method} {ctx.endpoint} succeeded after {ctx.attempt + 1} attempts")
                return outcome.data

            if outcome.passthrough is not None:
                self.circuit_breaker.release_probe()
                stats["failures"] += 1
                raise outcome.passthrough

            failure = outcome.error
            if not failure.retryable:
                if failure.counts_against_breaker:
                    self.circuit_breaker.record_failure()
                else:
                    self.circuit_breaker.release_probe()
                stats["failures"] += 1
                error = self._error(failure.kind, failure.message, ctx, status=failure.status)
                log_request_error(error)
                raise error

            if ctx.attempts_remaining > 0:
                delay = self.backoff.delay(ctx.attempt)
                logger.warning(
                    f"{ctx.method} {ctx.endpoint} failed (attempt {ctx.attempt + 1}/{retries + 1}, "
                    f"{failure.kind.value}), retrying in {delay:.2f}s: {failure.message}"
                )
                # Probe outcome is decided by the retry, not this attempt
                self.circuit_breaker.release_probe()
                stats["retries"] += 1
                await self.clock.sleep(delay)
                ctx.attempts_remaining -= 1
                continue

            self.circuit_breaker.record_failure()
            stats["failures"] += 1
            error = self._error(
                failure.kind,
                failure.message,
                ctx,
                status=failure.status,
                retry_attempt=ctx.attempt,
                max_retries=retries,
            )
            logger.error(f"{ctx.method} {ctx.endpoint} failed after {ctx.attempt + 1} attempts")
            log_request_error(error)
            raise error

    def attempt_timeout(self, ctx: RetryContext) -> float:
        """Deadline for the current attempt: request_timeout times the attempt number"""
        return self.config.request_timeout * (ctx.max_retries - ctx.attempts_remaining + 1)

    async def _attempt(self, ctx: RetryContext) -> AttemptOutcome:
        """Run one network attempt and classify its result"""
        deadline = self.attempt_timeout(ctx)
        try:
            response = await asyncio.wait_for(self._send(ctx, deadline), timeout=deadline)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            classified = self.classifier.classify_exception(e)
            if classified is None:
                return AttemptOutcome(passthrough=e)
            return AttemptOutcome(error=classified)

        await self.connectivity.record_success()

        data = self._decode_body(response)
        message = data.get("message") if isinstance(data, dict) else None
        classified = self.classifier.classify_status(response.status_code, message)
        if classified is not None:
            return AttemptOutcome(error=classified)
        return AttemptOutcome(data=data)

    async def _send(self, ctx: RetryContext, deadline: float) -> httpx.Response:
        headers = dict(self.config.headers)
        headers.update(ctx.options.get("headers") or {})
        return await self.http_client.request(
            ctx.method,
            ctx.url,
            headers=headers,
            json=ctx.options.get("json"),
            params=ctx.options.get("params"),
            timeout=httpx.Timeout(deadline, connect=self.config.connection_timeout),
        )

    @staticmethod
    def _decode_body(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    def _error(self, kind: ErrorKind, message: str, ctx: RetryContext, **extra) -> RequestError:
        context = {
            "endpoint": ctx.endpoint,
            "url": ctx.url,
            "method": ctx.method,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "circuit_state": self.circuit_breaker.state.value,
        }
        context.update({key: value for key, value in extra.items() if value is not None})
        return RequestError(kind, message, context)

    def get_request_stats(self) -> Dict[str, Dict[str, int]]:
        """Get per-endpoint request statistics"""
        return {endpoint: dict(stats) for endpoint, stats in self.request_stats.items()}

    async def aclose(self) -> None:
        if self._owns_client:
            await self.http_client.aclose()
