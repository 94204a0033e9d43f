"""
Health reporting for the journal network client
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from ..clock import Clock, system_clock
from ..error_recovery.circuit_breaker import CircuitBreaker, CircuitState
from ..messaging.connection_manager import ConnectionManager, ConnectionState
from ..network.connectivity import ConnectivityMonitor
from ..task_queue.offline_queue import OfflineQueue

logger = logging.getLogger(__name__)


class HealthStatus(Enum):
    """Health status enumeration"""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    """Health status of a component"""
    name: str
    status: HealthStatus
    last_check: datetime
    error_message: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ClientHealth:
    """Overall client health"""
    status: HealthStatus
    timestamp: datetime
    uptime_seconds: float
    components: List[ComponentHealth]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "timestamp": self.timestamp.isoformat(),
            "uptime_seconds": self.uptime_seconds,
            "components": [
                {
                    "name": c.name,
                    "status": c.status.value,
                    "last_check": c.last_check.isoformat(),
                    "error_message": c.error_message,
                    "details": c.details,
                }
                for c in self.components
            ],
        }


class ClientHealthMonitor:
    """Aggregates breaker, connectivity, queue and socket state into one report"""

    def __init__(
        self,
        circuit_breaker: CircuitBreaker,
        connectivity: ConnectivityMonitor,
        offline_queue: OfflineQueue,
        connection: Optional[ConnectionManager] = None,
        clock: Clock = None,
    ):
        self.circuit_breaker = circuit_breaker
        self.connectivity = connectivity
        self.offline_queue = offline_queue
        self.connection = connection
        self.clock = clock or system_clock
        self.start_time = self.clock.monotonic()

    def _now(self) -> datetime:
        return datetime.fromtimestamp(self.clock.time(), tz=timezone.utc)

    async def get_client_health(self) -> ClientHealth:
        components = [
            self._check_circuit_breaker(),
            await self._check_connectivity(),
            self._check_offline_queue(),
        ]
        if self.connection is not None:
            components.append(self._check_websocket())

        overall_status = HealthStatus.HEALTHY
        if any(c.status != HealthStatus.HEALTHY for c in components):
            overall_status = HealthStatus.DEGRADED
        if self.circuit_breaker.state == CircuitState.OPEN:
            overall_status = HealthStatus.UNHEALTHY

        return ClientHealth(
            status=overall_status,
            timestamp=self._now(),
            uptime_seconds=self.clock.monotonic() - self.start_time,
            components=components,
        )

    def _check_circuit_breaker(self) -> ComponentHealth:
        status = {
            CircuitState.CLOSED: HealthStatus.HEALTHY,
            CircuitState.HALF_OPEN: HealthStatus.DEGRADED,
            CircuitState.OPEN: HealthStatus.UNHEALTHY,
        }[self.circuit_breaker.state]
        return ComponentHealth(
            name="circuit_breaker",
            status=status,
            last_check=self._now(),
            details=self.circuit_breaker.get_state(),
        )

    async def _check_connectivity(self) -> ComponentHealth:
        try:
            online = await self.connectivity.is_online()
        except Exception as e:
            logger.error(f"Connectivity health check failed: {e}")
            return ComponentHealth(
                name="connectivity",
                status=HealthStatus.UNHEALTHY,
                last_check=self._now(),
                error_message=str(e),
            )
        return ComponentHealth(
            name="connectivity",
            status=HealthStatus.HEALTHY if online else HealthStatus.DEGRADED,
            last_check=self._now(),
            details={"online_signal": self.connectivity.online, "online": online},
        )

    def _check_offline_queue(self) -> ComponentHealth:
        depth = len(self.offline_queue)
        return ComponentHealth(
            name="offline_queue",
            status=HealthStatus.HEALTHY if depth == 0 else HealthStatus.DEGRADED,
            last_check=self._now(),
            details={"depth": depth, "draining": self.offline_queue.is_draining, **self.offline_queue.stats},
        )

    def _check_websocket(self) -> ComponentHealth:
        status = {
            ConnectionState.CONNECTED: HealthStatus.HEALTHY,
            ConnectionState.CONNECTING: HealthStatus.DEGRADED,
            ConnectionState.DISCONNECTED: HealthStatus.UNHEALTHY,
        }[self.connection.state]
        return ComponentHealth(
            name="websocket",
            status=status,
            last_check=self._now(),
            details=self.connection.get_status(),
        )
