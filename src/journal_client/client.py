"""
Journal network client

Builds one of each resilience component from a ClientConfig and passes them
by reference, so the breaker and the offline queue are shared by every call
made through the same client and isolated between clients.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from .clock import Clock, system_clock
from .config import ClientConfig
from .error_recovery.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from .error_recovery.errors import ErrorClassifier
from .messaging.connection_manager import ConnectionManager, SocketFactory
from .monitoring.health_monitor import ClientHealthMonitor
from .network.connectivity import ConnectivityMonitor
from .network.request_executor import RequestExecutor
from .services.auth_service import AuthService
from .storage import KeyValueStore, create_store
from .task_queue.offline_queue import OfflineQueue

logger = logging.getLogger(__name__)


class JournalClient:
    """HTTP request pipeline plus the persistent socket for one journal server"""

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        store: Optional[KeyValueStore] = None,
        clock: Clock = None,
        http_client: Optional[httpx.AsyncClient] = None,
        socket_factory: Optional[SocketFactory] = None,
    ):
        self.config = config or ClientConfig()
        self.config.validate()
        self.clock = clock or system_clock
        self.store = store or create_store(self.config.redis_url)

        self.classifier = ErrorClassifier()
        self.circuit_breaker = CircuitBreaker(
            CircuitBreakerConfig(
                failure_threshold=self.config.circuit_breaker_threshold,
                reset_timeout_seconds=self.config.circuit_breaker_reset_timeout,
            ),
            clock=self.clock,
        )
        self.connectivity = ConnectivityMonitor(
            self.store,
            clock=self.clock,
            stale_after_seconds=self.config.connectivity_window,
        )
        self.offline_queue = OfflineQueue(
            self.connectivity,
            classifier=self.classifier,
            clock=self.clock,
            item_delay_seconds=self.config.queue_item_delay,
        )
        self.executor = RequestExecutor(
            self.config,
            self.circuit_breaker,
            self.connectivity,
            self.offline_queue,
            classifier=self.classifier,
            clock=self.clock,
            http_client=http_client,
        )
        self.auth = AuthService(self.executor, self.config, self.store, clock=self.clock)
        self.connection = ConnectionManager(
            url=self.config.socket_url,
            max_reconnect_attempts=self.config.max_reconnect_attempts,
            base_reconnect_delay=self.config.base_reconnect_delay,
            connection_timeout=self.config.connection_timeout,
            socket_factory=socket_factory,
            clock=self.clock,
        )
        self.health_monitor = ClientHealthMonitor(
            self.circuit_breaker,
            self.connectivity,
            self.offline_queue,
            self.connection,
            clock=self.clock,
        )

    async def request(self, group: str, name: str, options: Optional[Dict[str, Any]] = None,
                      max_retries: Optional[int] = None, authenticated: bool = False) -> Any:
        """Call a named endpoint through the request pipeline"""
        options = dict(options or {})
        if authenticated:
            headers = dict(options.get("headers") or {})
            headers.update(await self.auth.auth_headers())
            options["headers"] = headers
        return await self.executor.execute(self.config.url_for(group, name), options, max_retries)

    def set_online(self, online: bool) -> None:
        """Forward the online/offline signal; going online replays the offline queue"""
        self.connectivity.set_online(online)
        if online:
            self.offline_queue.schedule_drain()

    def get_status(self) -> Dict[str, Any]:
        return {
            "circuit_breaker": self.circuit_breaker.get_state(),
            "offline_queue": {
                "depth": len(self.offline_queue),
                "draining": self.offline_queue.is_draining,
                **self.offline_queue.stats,
            },
            "online_signal": self.connectivity.online,
            "connection": self.connection.get_status(),
            "request_stats": self.executor.get_request_stats(),
        }

    async def aclose(self) -> None:
        await self.connection.disconnect()
        await self.executor.aclose()
        await self.store.close()
        logger.info("Journal client closed")

    async def __aenter__(self) -> "JournalClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
