"""
Error Recovery Module

Provides the resilience primitives of the request pipeline:
- Error classification into a fixed set of kinds
- Exponential backoff with jitter
- A circuit breaker shared by all calls of a client
"""

from .backoff import BackoffPolicy, reconnect_backoff, retry_backoff
from .circuit_breaker import CircuitBreaker, CircuitBreakerConfig, CircuitState
from .errors import (
    ClassifiedError,
    ConfigurationError,
    ErrorClassifier,
    ErrorKind,
    RequestError,
    log_request_error,
)

__all__ = [
    'BackoffPolicy',
    'reconnect_backoff',
    'retry_backoff',
    'CircuitBreaker',
    'CircuitBreakerConfig',
    'CircuitState',
    'ClassifiedError',
    'ConfigurationError',
    'ErrorClassifier',
    'ErrorKind',
    'RequestError',
    'log_request_error',
]
