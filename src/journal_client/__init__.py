"""
Journal network client

Resilient HTTP request pipeline and reconnecting WebSocket connection for
the journal server.
"""

from .client import JournalClient
from .clock import Clock
from .config import ClientConfig, get_api_url, validate_api_url
from .error_recovery import (
    BackoffPolicy,
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitState,
    ConfigurationError,
    ErrorClassifier,
    ErrorKind,
    RequestError,
)
from .messaging import ConnectionManager, ConnectionState, Envelope, EventBus, EventChannel, MessageType
from .network import ConnectivityMonitor, RequestExecutor
from .services import AuthService
from .storage import InMemoryStore, KeyValueStore, RedisStore
from .task_queue import OfflineQueue, QueuedRequest

__version__ = "0.1.0"

__all__ = [
    "JournalClient",
    "Clock",
    "ClientConfig",
    "get_api_url",
    "validate_api_url",
    "BackoffPolicy",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitState",
    "ConfigurationError",
    "ErrorClassifier",
    "ErrorKind",
    "RequestError",
    "ConnectionManager",
    "ConnectionState",
    "Envelope",
    "EventBus",
    "EventChannel",
    "MessageType",
    "ConnectivityMonitor",
    "RequestExecutor",
    "AuthService",
    "InMemoryStore",
    "KeyValueStore",
    "RedisStore",
    "OfflineQueue",
    "QueuedRequest",
]
