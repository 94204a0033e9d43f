"""
Error taxonomy and classification for the request pipeline

Every failure is reduced to one ErrorKind before it reaches a caller or the
circuit breaker. Callers branch on RequestError.kind rather than on
exception subclasses.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class ErrorKind(Enum):
    """Failure kinds surfaced by the client"""
    NETWORK = "network"                          # Transport fault, no response
    SERVER = "server"                            # 5xx response
    VALIDATION = "validation"                    # 400 and other client errors
    AUTHENTICATION = "authentication"            # 401 / 403
    TIMEOUT = "timeout"                          # Attempt deadline exceeded
    SERVICE_UNAVAILABLE = "service_unavailable"  # Rejected locally by the circuit breaker

    @property
    def retryable(self) -> bool:
        return self in TRANSIENT_KINDS

    @property
    def counts_against_breaker(self) -> bool:
        return self in TRANSIENT_KINDS


TRANSIENT_KINDS = frozenset({ErrorKind.NETWORK, ErrorKind.SERVER, ErrorKind.TIMEOUT})


class ConfigurationError(ValueError):
    """Raised for unusable client configuration"""


class RequestError(Exception):
    """
    A classified failure of a logical network call

    Args:
        kind: The ErrorKind of the failure
        message: Human readable description
        context: endpoint, method, timestamp and, where relevant, status,
            retry_attempt, max_retries and circuit_state
    """

    def __init__(self, kind: ErrorKind, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.context = dict(context or {})
        self.context.setdefault("timestamp", datetime.now(timezone.utc).isoformat())

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "context": dict(self.context),
        }

    def __repr__(self) -> str:
        return f"RequestError(kind={self.kind.value!r}, message={self.message!r})"


@dataclass
class ClassifiedError:
    """Result of classifying a single failed attempt"""
    kind: ErrorKind
    message: str
    retryable: bool
    counts_against_breaker: bool
    status: Optional[int] = None

    @classmethod
    def of(cls, kind: ErrorKind, message: str, status: Optional[int] = None) -> "ClassifiedError":
        return cls(
            kind=kind,
            message=message,
            retryable=kind.retryable,
            counts_against_breaker=kind.counts_against_breaker,
            status=status,
        )


class ErrorClassifier:
    """Maps HTTP statuses and raised exceptions to an ErrorKind"""

    def __init__(self):
        # Message fragments that identify transport faults raised as generic errors
        self.error_patterns = {
            ErrorKind.TIMEOUT: [
                "timed out", "timeout", "deadline exceeded",
            ],
            ErrorKind.NETWORK: [
                "connection refused", "connection reset", "connection aborted",
                "network", "unreachable", "no response", "dns",
                "name or service not known", "failed to fetch",
            ],
        }

    def classify_status(self, status: int, message: Optional[str] = None) -> Optional[ClassifiedError]:
        """Classify an HTTP status; returns None for success statuses"""
        if status < 400:
            return None
        if status == 400:
            return ClassifiedError.of(ErrorKind.VALIDATION, message or "Invalid request", status)
        if status in (401, 403):
            return ClassifiedError.of(ErrorKind.AUTHENTICATION, message or "Authentication failed", status)
        if status >= 500:
            return ClassifiedError.of(ErrorKind.SERVER, message or f"Server error occurred: {status}", status)
        return ClassifiedError.of(ErrorKind.VALIDATION, message or f"Request failed: {status}", status)

    def classify_exception(self, error: BaseException) -> Optional[ClassifiedError]:
        """
        Classify a raised exception

        Returns None when the error is not a transport fault and must be
        surfaced to the caller unchanged.
        """
        if isinstance(error, RequestError):
            return ClassifiedError.of(error.kind, error.message, error.context.get("status"))

        if isinstance(error, (asyncio.TimeoutError, httpx.TimeoutException)):
            return ClassifiedError.of(ErrorKind.TIMEOUT, "Request timeout")

        if isinstance(error, httpx.TransportError):
            return ClassifiedError.of(ErrorKind.NETWORK, f"Unable to connect to the server: {error}")

        if isinstance(error, (ConnectionError, OSError)):
            return ClassifiedError.of(ErrorKind.NETWORK, f"Unable to connect to the server: {error}")

        error_message = str(error).lower()
        for kind, patterns in self.error_patterns.items():
            if any(pattern in error_message for pattern in patterns):
                return ClassifiedError.of(kind, str(error))

        return None

    def is_retryable(self, error: BaseException) -> bool:
        classified = self.classify_exception(error)
        return classified is not None and classified.retryable


def log_request_error(error: RequestError) -> None:
    """Log a surfaced request error with its retry and breaker details"""
    context = error.context
    details = {
        "kind": error.kind.value,
        "message": error.message,
        "status": context.get("status"),
        "endpoint": context.get("endpoint"),
        "method": context.get("method"),
        "retry_attempt": context.get("retry_attempt"),
        "max_retries": context.get("max_retries"),
        "circuit_state": context.get("circuit_state"),
        "timestamp": context.get("timestamp"),
    }
    logger.error(f"API error: {details}")
