"""
Persistent WebSocket connection with automatic reconnection

Handles:
- Connection lifecycle (Disconnected -> Connecting -> Connected)
- Envelope parsing and fan-out to message subscribers
- Status notifications on open, close and error
- Exponential reconnection schedule bounded by an attempt limit
- Deliberate disconnect that stops all future reconnection
"""

import asyncio
import json
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from websockets.asyncio.client import connect as websocket_connect
from websockets.exceptions import ConnectionClosed

from ..clock import Clock, system_clock
from ..error_recovery.backoff import BackoffPolicy, reconnect_backoff
from .event_bus import EventBus, EventChannel, Subscription
from .schemas import Envelope, MessageType, build_envelope, parse_envelope

logger = logging.getLogger(__name__)

SocketFactory = Callable[[str], Awaitable[Any]]


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


def websocket_factory(open_timeout: float = 15.0) -> SocketFactory:
    """Socket factory opening a real connection with the websockets library"""
    async def _open(url: str):
        return await websocket_connect(url, open_timeout=open_timeout)
    return _open


class ConnectionManager:
    """
    Owns a single socket and keeps it open

    The socket returned by the factory must support ``await send(str)``,
    ``await close()`` and async iteration over inbound frames.
    """

    def __init__(
        self,
        url: str = "ws://localhost:8080",
        max_reconnect_attempts: int = 5,
        base_reconnect_delay: float = 1.0,
        connection_timeout: float = 15.0,
        socket_factory: Optional[SocketFactory] = None,
        event_bus: Optional[EventBus] = None,
        clock: Clock = None,
        backoff: Optional[BackoffPolicy] = None,
    ):
        self.url = url
        self.max_reconnect_attempts = max_reconnect_attempts
        self.socket_factory = socket_factory or websocket_factory(connection_timeout)
        self.event_bus = event_bus or EventBus()
        self.clock = clock or system_clock
        self.backoff = backoff or reconnect_backoff(base_reconnect_delay)

        self.state = ConnectionState.DISCONNECTED
        self.reconnect_attempts = 0
        self._socket = None
        self._reader_task: Optional[asyncio.Task] = None
        self._reconnect_task: Optional[asyncio.Task] = None
        self._closed_deliberately = False

    @property
    def is_connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED

    @property
    def reconnect_task(self) -> Optional[asyncio.Task]:
        return self._reconnect_task

    # Subscriptions

    def on_message(self, callback: Callable[[Envelope], Any]) -> Subscription:
        return self.event_bus.subscribe(EventChannel.MESSAGE, callback)

    def on_status_change(self, callback: Callable[[bool], Any]) -> Subscription:
        return self.event_bus.subscribe(EventChannel.STATUS, callback)

    def unsubscribe(self, subscription: Subscription) -> bool:
        return self.event_bus.unsubscribe(subscription)

    # Lifecycle

    async def connect(self) -> None:
        """Open the connection; failures are handled by the reconnection schedule"""
        if self.state != ConnectionState.DISCONNECTED:
            logger.debug(f"connect() ignored, connection is {self.state.value}")
            return
        self._closed_deliberately = False
        await self._open()

    async def _open(self) -> None:
        self.state = ConnectionState.CONNECTING
        try:
            socket = await self.socket_factory(self.url)
        except asyncio.CancelledError:
            self.state = ConnectionState.DISCONNECTED
            raise
        except Exception as e:
            logger.error(f"WebSocket connection error: {e}")
            await self._handle_disconnect()
            return

        if self._closed_deliberately:
            await self._close_socket(socket)
            self.state = ConnectionState.DISCONNECTED
            return

        self._socket = socket
        self.state = ConnectionState.CONNECTED
        self.reconnect_attempts = 0
        logger.info(f"WebSocket connection established to {self.url}")
        await self.event_bus.notify(EventChannel.STATUS, True)

        # A status subscriber may have disconnected us already
        if self._socket is socket:
            self._reader_task = asyncio.create_task(self._read_loop(socket))

    async def _read_loop(self, socket) -> None:
        try:
            async for frame in socket:
                await self._handle_frame(frame)
            logger.info("WebSocket connection closed")
        except ConnectionClosed as e:
            logger.info(f"WebSocket connection closed: {e}")
        except Exception as e:
            logger.error(f"WebSocket error: {e}")

        if self._socket is socket:
            await self._handle_disconnect()

    async def _handle_frame(self, frame: Union[str, bytes]) -> None:
        envelope = parse_envelope(frame)
        if envelope is None:
            return
        if envelope.message_type is None:
            logger.debug(f"Received unrecognized message type: {envelope.type}")
        await self.event_bus.notify(EventChannel.MESSAGE, envelope)

    async def _handle_disconnect(self) -> None:
        self._socket = None
        self.state = ConnectionState.DISCONNECTED
        await self.event_bus.notify(EventChannel.STATUS, False)
        if not self._closed_deliberately:
            self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        if self.reconnect_attempts >= self.max_reconnect_attempts:
            logger.error("Max reconnection attempts reached")
            return

        delay = self.backoff.delay(self.reconnect_attempts)
        logger.info(f"Attempting to reconnect in {delay:.1f}s...")
        self.reconnect_attempts += 1
        self._reconnect_task = asyncio.create_task(self._reconnect_after(delay))

    async def _reconnect_after(self, delay: float) -> None:
        await self.clock.sleep(delay)
        if self._closed_deliberately or self.state != ConnectionState.DISCONNECTED:
            return
        await self._open()

    async def disconnect(self) -> None:
        """Close the connection, stop reconnecting and drop all subscribers"""
        self._closed_deliberately = True
        current = asyncio.current_task()

        if self._reconnect_task and not self._reconnect_task.done() and self._reconnect_task is not current:
            self._reconnect_task.cancel()
        self._reconnect_task = None

        socket, self._socket = self._socket, None
        if self._reader_task and not self._reader_task.done() and self._reader_task is not current:
            self._reader_task.cancel()
        self._reader_task = None

        if socket is not None:
            await self._close_socket(socket)

        self.state = ConnectionState.DISCONNECTED
        self.event_bus.clear()
        logger.info("WebSocket disconnected")

    @staticmethod
    async def _close_socket(socket) -> None:
        try:
            await socket.close()
        except Exception as e:
            logger.error(f"Error closing WebSocket: {e}")

    # Sending

    async def send_message(self, payload: Union[Envelope, Dict[str, Any]]) -> bool:
        """Send an envelope; returns False instead of raising when not connected"""
        if not self.is_connected or self._socket is None:
            logger.error("Cannot send message: WebSocket is not connected")
            return False

        try:
            frame = payload.to_frame() if isinstance(payload, Envelope) else json.dumps(payload)
            await self._socket.send(frame)
            return True
        except Exception as e:
            logger.error(f"Error sending message: {e}")
            return False

    async def save_entry(self, entry: Dict[str, Any]) -> bool:
        """Convenience method to send a SAVE_ENTRY request"""
        return await self.send_message(build_envelope(MessageType.SAVE_ENTRY, entry))

    async def request_entries(self) -> bool:
        """Convenience method to send a GET_ENTRIES request"""
        return await self.send_message(build_envelope(MessageType.GET_ENTRIES, {}))

    def get_status(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "state": self.state.value,
            "reconnect_attempts": self.reconnect_attempts,
            "max_reconnect_attempts": self.max_reconnect_attempts,
            "message_subscribers": self.event_bus.subscriber_count(EventChannel.MESSAGE),
            "status_subscribers": self.event_bus.subscriber_count(EventChannel.STATUS),
        }
