"""
Monitoring package for the journal network client

Provides health reporting across the circuit breaker, connectivity,
offline queue and WebSocket connection.
"""

from .health_monitor import ClientHealth, ClientHealthMonitor, ComponentHealth, HealthStatus

__all__ = ["ClientHealth", "ClientHealthMonitor", "ComponentHealth", "HealthStatus"]
