"""
Messaging Module

Provides the journal WebSocket protocol envelope, subscriber registries and
the reconnecting connection manager.
"""

from .connection_manager import ConnectionManager, ConnectionState, websocket_factory
from .event_bus import EventBus, EventChannel, Subscription
from .schemas import Envelope, MessageType, build_envelope, parse_envelope

__all__ = [
    'ConnectionManager',
    'ConnectionState',
    'websocket_factory',
    'EventBus',
    'EventChannel',
    'Subscription',
    'Envelope',
    'MessageType',
    'build_envelope',
    'parse_envelope',
]
